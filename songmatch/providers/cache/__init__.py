"""Cache providers.

MemoryCacheProvider is a process-local TTL cache used for query embeddings.
"""

from songmatch.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
