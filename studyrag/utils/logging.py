"""structlog setup shared by the CLI and anything embedding studyrag.

One processor chain feeds one of two renderers: coloured console output
while developing, JSON lines when ``APP_ENV=production`` (or when the
caller asks for JSON).  Records from the standard ``logging`` module,
which chromadb, httpx and the model SDKs use, are routed through the same
chain so that all output on stderr shares one format.  stdout stays free
for command results.
"""

import logging
import os
import sys

import structlog

# Libraries that log every HTTP request or telemetry attempt at INFO.
_NOISY_LOGGERS = ("chromadb", "httpx", "httpcore", "openai", "anthropic", "posthog")

_HANDLER_NAME = "studyrag"


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="iso"),
    ]


def _install_stdlib_handler(
    processors: list[structlog.types.Processor],
    renderer: structlog.types.Processor,
    level: str,
) -> None:
    """Attach (or replace) the studyrag handler on the root logger."""
    handler = logging.StreamHandler(sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *processors, renderer],
        )
    )

    root = logging.getLogger()
    for existing in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    # Dependency chatter stays at WARNING unless the user asked for DEBUG.
    quiet_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(quiet_level)


def configure_logging(log_level: str = "INFO", json_output: bool = False) -> structlog.BoundLogger:
    """Configure structlog and stdlib logging; safe to call more than once.

    Args:
        log_level: DEBUG, INFO, WARNING or ERROR (case-insensitive).
        json_output: Emit JSON lines even outside production.

    Returns:
        The root structlog logger.
    """
    level = log_level.upper()
    use_json = json_output or os.environ.get("APP_ENV", "development") == "production"
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if use_json else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    processors = _shared_processors()

    structlog.configure(
        processors=[*processors, renderer],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )
    _install_stdlib_handler(processors, renderer, level)

    return structlog.get_logger()


def get_logger(name: str) -> structlog.BoundLogger:
    """Return a logger bound to *name*, configuring defaults on first use."""
    if not structlog.is_configured():
        configure_logging()
    return structlog.get_logger(logger_name=name)
