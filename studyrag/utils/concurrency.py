"""Shared concurrency primitives for provider fan-out and request timeouts.

Two patterns are exposed:

1. **throttled_gather** -- ``asyncio.gather`` over call factories with a
   semaphore bounding how many run at once.  The ingestion service uses it
   to embed every chunk of a document; results come back in input order,
   so chunk ``i`` always lines up with embedding ``i``.  The first failure
   cancels every later call, so a broken provider aborts an ingest after
   at most one semaphore's worth of in-flight requests.

2. **call_with_timeout** -- runs one provider call under
   ``asyncio.wait_for`` and retries it with exponential backoff when it
   times out.  Only timeouts are retried; any other exception propagates
   on the first attempt.  Embedding and generation calls go through this
   helper, vector-store mutations never do.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

import structlog

from studyrag.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    calls: list[Callable[[], Awaitable[_T]]],
    semaphore: asyncio.Semaphore,
) -> list[_T]:
    """Run ``calls`` concurrently, at most ``semaphore`` slots at a time.

    Fails fast: when call ``i`` raises, every call after position ``i`` is
    cancelled, or never started if it is still queued on the semaphore.
    Calls before ``i`` run to completion, so the exception raised is the
    one from the lowest failing position.

    Parameters
    ----------
    calls:
        Zero-argument factories; a call is only invoked once it holds a
        semaphore slot.
    semaphore:
        Semaphore bounding how many calls run simultaneously.

    Returns
    -------
    list[_T]
        Results in the same order as ``calls``.
    """
    tasks: list[asyncio.Task[_T]] = []
    lowest_failure: int | None = None

    async def _wrapped(position: int, call: Callable[[], Awaitable[_T]]) -> _T:
        nonlocal lowest_failure
        async with semaphore:
            try:
                return await call()
            except Exception:
                if lowest_failure is None or position < lowest_failure:
                    lowest_failure = position
                    for later in tasks[position + 1 :]:
                        later.cancel()
                raise

    tasks = [asyncio.ensure_future(_wrapped(i, call)) for i, call in enumerate(calls)]
    results = await asyncio.gather(*tasks, return_exceptions=True)

    if lowest_failure is not None:
        _logger.debug(
            "throttled_gather_aborted",
            failed_position=lowest_failure,
            skipped=sum(1 for task in tasks if task.cancelled()),
        )
        raise results[lowest_failure]
    return results  # type: ignore[return-value]


async def call_with_timeout(
    call: Callable[[], Awaitable[_T]],
    *,
    timeout: float,
    retries: int = 0,
    backoff: float = 0.5,
    operation: str = "provider_call",
    logger: structlog.BoundLogger | None = None,
) -> _T:
    """Await ``call()`` with a timeout, retrying timed-out attempts.

    Parameters
    ----------
    call:
        Zero-argument factory returning a fresh awaitable per attempt.
    timeout:
        Seconds allowed for each attempt.
    retries:
        Extra attempts after the first one times out.
    backoff:
        Base delay in seconds; attempt ``n`` waits ``backoff * 2**n``.
    operation:
        Name used in log events.

    Raises
    ------
    TimeoutError
        When every attempt timed out.  Callers translate this into their
        own failure type.
    """
    if logger is None:
        logger = _logger

    attempt = 0
    while True:
        try:
            return await asyncio.wait_for(call(), timeout=timeout)
        except TimeoutError:
            if attempt >= retries:
                logger.warning(
                    "provider_call_timed_out",
                    operation=operation,
                    attempts=attempt + 1,
                    timeout=timeout,
                )
                raise
            delay = backoff * (2**attempt)
            logger.info(
                "provider_call_retrying",
                operation=operation,
                attempt=attempt + 1,
                delay=delay,
            )
            await asyncio.sleep(delay)
            attempt += 1
