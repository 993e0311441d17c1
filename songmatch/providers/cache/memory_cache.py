"""Process-local cache for query embeddings, built on cachetools.

``TLRUCache`` gives least-recently-used eviction plus a per-entry expiry,
so ``set(..., ttl=...)`` is honoured instead of silently using the default.
"""

from __future__ import annotations

import time
from typing import Any, Callable, NamedTuple

from cachetools import TLRUCache

from songmatch.interfaces.cache_provider import ICacheProvider


class _Entry(NamedTuple):
    value: Any
    ttl: float


class MemoryCacheProvider(ICacheProvider):
    """LRU cache with per-entry TTL.

    Parameters
    ----------
    max_size:
        Entries kept before the least recently used one is evicted.
    ttl:
        Default time-to-live in seconds.
    timer:
        Clock used for expiry; injectable for tests.
    """

    def __init__(
        self,
        max_size: int = 1000,
        ttl: int = 3600,
        timer: Callable[[], float] = time.monotonic,
    ) -> None:
        self._default_ttl = ttl
        self._cache: TLRUCache[str, _Entry] = TLRUCache(
            maxsize=max_size,
            ttu=lambda _key, entry, now: now + entry.ttl,
            timer=timer,
        )
        self._hits = 0
        self._misses = 0

    async def get(self, key: str) -> Any | None:
        entry = self._cache.get(key)
        if entry is None:
            self._misses += 1
            return None
        self._hits += 1
        return entry.value

    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        self._cache[key] = _Entry(value, self._default_ttl if ttl is None else ttl)

    def stats(self) -> dict[str, int]:
        """Hit/miss counters and the current entry count."""
        return {"hits": self._hits, "misses": self._misses, "size": len(self._cache)}
