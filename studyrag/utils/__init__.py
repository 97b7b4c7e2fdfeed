"""Utility modules for studyrag.

- **errors** -- Exception hierarchy rooted at StudyRagError; each provider
  boundary raises its own subclass so callers can handle failures
  granularly without broad ``except Exception`` blocks.
- **concurrency** -- semaphore-bounded fan-out and timeout/retry helpers
  for embedding and generation calls.
- **text** -- whitespace normalisation and blank checks.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
"""

from studyrag.utils.concurrency import call_with_timeout, throttled_gather
from studyrag.utils.errors import (
    ConfigurationError,
    EmbeddingFailure,
    GenerationFailure,
    StudyRagError,
    ValidationError,
    VectorStoreFailure,
)
from studyrag.utils.logging import configure_logging, get_logger
from studyrag.utils.text import is_blank, normalize_whitespace

__all__ = [
    "ConfigurationError",
    "EmbeddingFailure",
    "GenerationFailure",
    "StudyRagError",
    "ValidationError",
    "VectorStoreFailure",
    "call_with_timeout",
    "configure_logging",
    "get_logger",
    "is_blank",
    "normalize_whitespace",
    "throttled_gather",
]
