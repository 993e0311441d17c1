"""Unit tests for songmatch.utils.concurrency."""

from __future__ import annotations

import asyncio

import pytest

from songmatch.utils.concurrency import chunked, throttled_gather


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_bounds_concurrency_and_keeps_order(self) -> None:
        running = 0
        peak = 0

        async def work(n: int) -> int:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return n * 2

        results = await throttled_gather([work(n) for n in range(6)], asyncio.Semaphore(2))

        assert results == [0, 2, 4, 6, 8, 10]
        assert peak == 2

    @pytest.mark.asyncio
    async def test_exceptions_are_returned(self) -> None:
        async def boom() -> None:
            raise ValueError("bad song")

        async def ok() -> str:
            return "ok"

        results = await throttled_gather([ok(), boom()])

        assert results[0] == "ok"
        assert isinstance(results[1], ValueError)


class TestChunked:
    def test_slices(self) -> None:
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([], 3)) == []

    def test_rejects_non_positive_size(self) -> None:
        with pytest.raises(ValueError):
            list(chunked([1], 0))
