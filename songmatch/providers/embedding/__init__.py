"""Embedding provider implementations.

Two implementations of IEmbeddingProvider, selected by the
``EMBEDDING_PRIMARY_PROVIDER`` / ``EMBEDDING_FALLBACK_PROVIDER`` settings:
    1. FastEmbedEmbeddingProvider ("local") -- ONNX, all-MiniLM-L6-v2 (384 dims).
    2. OpenAIEmbeddingProvider   ("openai") -- text-embedding-3-small (1536 dims).

Index-time and query-time vectors must come from the same one of these.
"""

from songmatch.providers.embedding.fastembed_embedding_provider import FastEmbedEmbeddingProvider
from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["FastEmbedEmbeddingProvider", "OpenAIEmbeddingProvider"]
