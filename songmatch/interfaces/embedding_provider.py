"""Abstract base class for text-embedding providers.

Defines the contract for turning text into fixed-dimension vectors.
Two variants exist: a remote provider (OpenAI ``text-embedding-3-small``)
and a local provider (fastembed ONNX ``all-MiniLM-L6-v2``).  The
:class:`~songmatch.services.embedding_service.EmbeddingService` wraps a
primary and an optional fallback behind this same contract.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementations:
#   FastEmbedEmbeddingProvider  -- local ONNX, 384 dims, batch 32
#   OpenAIEmbeddingProvider     -- remote, 1536 dims, batch 100
# Located in: songmatch/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for embedding backends used at index time and query time.

    The same model (and therefore the same dimension) must be used for
    both; vectors of a different dimension are unmatchable.
    """

    @abstractmethod
    async def initialize(self) -> None:
        """Prepare the provider (load a model, build a client).

        Must be idempotent and safe to call concurrently: concurrent
        callers await one shared in-flight initialization.

        Raises
        ------
        songmatch.utils.errors.EmbeddingProviderUnavailableError
            If the provider cannot be prepared.
        """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts.

        Parameters
        ----------
        texts:
            Texts to embed.  Implementations chunk the input into
            provider-appropriate batch sizes.

        Returns
        -------
        list[list[float]]
            Vectors corresponding positionally to *texts*, each of length
            :meth:`get_dimension`.

        Raises
        ------
        songmatch.utils.errors.EmbeddingProviderUnavailableError
            If the underlying model or API call fails.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Generate an embedding vector for a single text string."""

    @abstractmethod
    def get_model(self) -> str:
        """Return the model identifier, e.g. ``"text-embedding-3-small"``."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the vectors this provider produces.

        Constant for the lifetime of the provider instance.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"openai"`` or ``"local"``."""

    @abstractmethod
    async def is_available(self) -> bool:
        """Return ``True`` if the provider can serve requests right now.

        May trigger :meth:`initialize` and a test embedding; never raises.
        """
