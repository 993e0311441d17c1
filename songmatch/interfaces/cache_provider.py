"""Abstract base class for the query-embedding cache.

The embedding service keys entries as ``embedding:{model}:{text}`` so a
provider switch never serves a vector from the other model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Async key-value cache with per-entry expiry."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any, ttl: int | None = None) -> None:
        """Store *value* under *key*; *ttl* (seconds) overrides the cache default."""
