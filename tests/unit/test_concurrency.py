"""Unit tests for throttled_gather and call_with_timeout."""

from __future__ import annotations

import asyncio
import functools

import pytest

from studyrag.utils.concurrency import call_with_timeout, throttled_gather


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_preserves_input_order(self) -> None:
        async def work(i: int) -> int:
            await asyncio.sleep(0.001 * (5 - i))
            return i

        results = await throttled_gather([functools.partial(work, i) for i in range(5)], asyncio.Semaphore(3))
        assert results == [0, 1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_bounds_concurrency(self) -> None:
        running = 0
        peak = 0

        async def work() -> None:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.005)
            running -= 1

        await throttled_gather([work for _ in range(10)], asyncio.Semaphore(2))
        assert peak == 2

    @pytest.mark.asyncio
    async def test_first_failure_skips_queued_calls(self) -> None:
        started: list[int] = []

        async def work(i: int) -> int:
            started.append(i)
            if i == 0:
                raise RuntimeError("boom")
            return i

        with pytest.raises(RuntimeError, match="boom"):
            await throttled_gather([functools.partial(work, i) for i in range(50)], asyncio.Semaphore(1))

        assert started == [0]

    @pytest.mark.asyncio
    async def test_cancels_later_calls_in_flight(self) -> None:
        finished: list[int] = []

        async def work(i: int) -> int:
            if i == 1:
                await asyncio.sleep(0.01)
                raise RuntimeError("late failure")
            await asyncio.sleep(0.05 if i > 1 else 0)
            finished.append(i)
            return i

        with pytest.raises(RuntimeError):
            await throttled_gather([functools.partial(work, i) for i in range(4)], asyncio.Semaphore(4))

        assert finished == [0]

    @pytest.mark.asyncio
    async def test_raises_lowest_failing_position(self) -> None:
        async def work(i: int) -> int:
            # Position 3 fails first; position 1 fails later but wins.
            await asyncio.sleep(0.02 if i == 1 else 0)
            if i in (1, 3):
                raise ValueError(str(i))
            return i

        with pytest.raises(ValueError, match="1"):
            await throttled_gather([functools.partial(work, i) for i in range(5)], asyncio.Semaphore(5))


class TestCallWithTimeout:
    @pytest.mark.asyncio
    async def test_returns_value(self) -> None:
        async def quick() -> int:
            return 7

        assert await call_with_timeout(quick, timeout=1.0) == 7

    @pytest.mark.asyncio
    async def test_retries_timeouts_then_succeeds(self) -> None:
        attempts = 0

        async def flaky() -> str:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                await asyncio.sleep(1.0)
            return "done"

        result = await call_with_timeout(flaky, timeout=0.02, retries=2, backoff=0.001)
        assert result == "done"
        assert attempts == 3

    @pytest.mark.asyncio
    async def test_raises_timeout_when_exhausted(self) -> None:
        attempts = 0

        async def slow() -> None:
            nonlocal attempts
            attempts += 1
            await asyncio.sleep(1.0)

        with pytest.raises(TimeoutError):
            await call_with_timeout(slow, timeout=0.01, retries=1, backoff=0.001)
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self) -> None:
        attempts = 0

        async def broken() -> None:
            nonlocal attempts
            attempts += 1
            raise ValueError("bad")

        with pytest.raises(ValueError):
            await call_with_timeout(broken, timeout=1.0, retries=3)
        assert attempts == 1
