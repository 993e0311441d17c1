"""Abstract interfaces for every external collaborator of the engine.

    Interface            →  Concrete implementations (songmatch/providers/)
    ──────────────────────────────────────────────────────────────────────
    IEmbeddingProvider   →  OpenAIEmbeddingProvider, FastEmbedEmbeddingProvider
    ILLMProvider         →  OpenAILLMProvider
    ICacheProvider       →  MemoryCacheProvider
    ISongStore           →  SQLiteSongStore
"""

from songmatch.interfaces.cache_provider import ICacheProvider
from songmatch.interfaces.embedding_provider import IEmbeddingProvider
from songmatch.interfaces.llm_provider import ILLMProvider
from songmatch.interfaces.song_store import ISongStore, Neighbor

__all__ = [
    "ICacheProvider",
    "IEmbeddingProvider",
    "ILLMProvider",
    "ISongStore",
    "Neighbor",
]
