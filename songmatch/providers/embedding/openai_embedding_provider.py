"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports real OpenAI and OpenAI-compatible endpoints via a custom
``base_url``.  This is the "remote" variant of the embedding service.
"""

from __future__ import annotations

import asyncio

import openai
import structlog

from songmatch.config.settings import Settings
from songmatch.interfaces.embedding_provider import IEmbeddingProvider
from songmatch.utils.errors import EmbeddingProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"
_BATCH_LIMIT = 100
# Pause between consecutive batch requests of one embed() call.
_BATCH_DELAY_SECONDS = 0.1

_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  For the v3
    models a reduced ``embedding_dimensions`` setting is passed through as
    the API's ``dimensions`` parameter so vectors can match a smaller index.
    """

    def __init__(
        self,
        settings: Settings,
        batch_size: int = _BATCH_LIMIT,
        batch_delay: float = _BATCH_DELAY_SECONDS,
    ) -> None:
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {"api_key": self._api_key or "unset"}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url
        self._client = openai.AsyncOpenAI(**client_kwargs)

        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        native_dimension = _MODEL_DIMENSIONS.get(self._model, 1536)
        self._request_dimensions: int | None = None
        if settings.embedding_dimensions and self._model.startswith("text-embedding-3"):
            self._request_dimensions = settings.embedding_dimensions
        self._dimension = self._request_dimensions or native_dimension

        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._verified = False

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Check that credentials are configured; the client itself is built eagerly."""
        if not self._api_key:
            raise EmbeddingProviderUnavailableError(
                message="OPENAI_API_KEY is not configured",
                provider_name=self.get_provider_name(),
            )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in batches of ``batch_size``, pausing between batches."""
        if not texts:
            return []
        await self.initialize()

        all_embeddings: list[list[float]] = []
        try:
            for start in range(0, len(texts), self._batch_size):
                if start > 0 and self._batch_delay > 0:
                    await asyncio.sleep(self._batch_delay)
                batch = texts[start : start + self._batch_size]
                request: dict = {"input": batch, "model": self._model}
                if self._request_dimensions:
                    request["dimensions"] = self._request_dimensions
                response = await self._client.embeddings.create(**request)
                all_embeddings.extend(item.embedding for item in response.data)
                logger.debug(
                    "openai_embedding_batch",
                    model=self._model,
                    batch_size=len(batch),
                    tokens=response.usage.total_tokens if response.usage else None,
                )
        except openai.APIError as exc:
            raise EmbeddingProviderUnavailableError(
                message=f"OpenAI embeddings API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        return all_embeddings

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_model(self) -> str:
        return self._model

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "openai"

    async def is_available(self) -> bool:
        """Return ``True`` once a test embedding has succeeded.

        A successful probe is remembered; failures are retried on the next call.
        """
        if not self._api_key:
            return False
        if self._verified:
            return True
        try:
            await self.embed(["test"])
        except EmbeddingProviderUnavailableError as exc:
            logger.warning("openai_embedding_unavailable", error=str(exc))
            return False
        self._verified = True
        return True
