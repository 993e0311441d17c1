"""Bounded-concurrency helpers for the backfill job.

The backfill fans out one coroutine per song (and, in batch-prompt mode,
one per chunk of songs).  ``throttled_gather`` caps how many of those talk
to the LLM and embedding APIs at once; ``chunked`` slices a page into the
chunks a single batch prompt can hold.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator, Sequence
from typing import Awaitable, TypeVar

_T = TypeVar("_T")

DEFAULT_CONCURRENCY = 3


async def throttled_gather(
    coros: Sequence[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """``asyncio.gather`` with at most ``semaphore``-many awaitables running.

    Parameters
    ----------
    coros:
        Awaitables to run.
    semaphore:
        Shared limiter.  Pass the same semaphore to several calls to bound
        them together; a fresh ``DEFAULT_CONCURRENCY`` semaphore otherwise.
    return_exceptions:
        Return exceptions in place of results instead of raising the first.

    Returns
    -------
    list[_T | BaseException]
        Results in input order.
    """
    limiter = semaphore or asyncio.Semaphore(DEFAULT_CONCURRENCY)

    async def _run(coro: Awaitable[_T]) -> _T:
        async with limiter:
            return await coro

    return await asyncio.gather(*(_run(c) for c in coros), return_exceptions=return_exceptions)


def chunked(items: Sequence[_T], size: int) -> Iterator[list[_T]]:
    """Yield consecutive slices of *items* holding at most *size* elements."""
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    for start in range(0, len(items), size):
        yield list(items[start : start + size])
