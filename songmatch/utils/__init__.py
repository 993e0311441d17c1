"""Utility modules for songmatch.

- **errors** -- exception hierarchy rooted at SongMatchError.
- **logging** -- structlog setup with console/JSON dual rendering.
- **vector_math** -- cosine/euclidean/dot primitives and top-K search.
- **concurrency** -- semaphore-throttled gather and chunking for batch jobs.
- **text_normalizer** -- text cleaning and rapidfuzz fuzzy matching.
"""

from songmatch.utils.concurrency import chunked, throttled_gather
from songmatch.utils.errors import (
    AllProvidersFailedError,
    ConfigurationError,
    ContentAnalysisError,
    DimensionMismatchError,
    EmbeddingProviderUnavailableError,
    InvalidGenerationOutputError,
    LLMError,
    RateLimitError,
    SongMatchError,
    SongStoreError,
)
from songmatch.utils.logging import configure_logging, get_logger
from songmatch.utils.text_normalizer import clean_text, fuzzy_match, tokenize

__all__ = [
    "AllProvidersFailedError",
    "ConfigurationError",
    "ContentAnalysisError",
    "DimensionMismatchError",
    "EmbeddingProviderUnavailableError",
    "InvalidGenerationOutputError",
    "LLMError",
    "RateLimitError",
    "SongMatchError",
    "SongStoreError",
    "clean_text",
    "configure_logging",
    "fuzzy_match",
    "get_logger",
    "chunked",
    "throttled_gather",
    "tokenize",
]
