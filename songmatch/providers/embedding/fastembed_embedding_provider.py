"""Local ONNX-based embedding provider using fastembed.

Wraps the ``fastembed`` library to implement :class:`IEmbeddingProvider`
using ONNX Runtime -- no PyTorch dependency.  This is the "local" variant of
the embedding service: free, CPU-only, 384-dimensional by default.

The model download/load is slow and must happen once per process, so
initialization is single-flight: the first caller starts the load and every
concurrent caller awaits the same task.
"""

from __future__ import annotations

import asyncio

import structlog

from songmatch.interfaces.embedding_provider import IEmbeddingProvider
from songmatch.utils.errors import EmbeddingProviderUnavailableError

logger = structlog.get_logger(logger_name=__name__)

_MODEL_DIMENSIONS: dict[str, int] = {
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-base-en-v1.5": 768,
    "intfloat/multilingual-e5-large": 1024,
}

_DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"
_BATCH_LIMIT = 32


class FastEmbedEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by fastembed (ONNX Runtime).

    Loads the ONNX model on first use.  Model weights are downloaded on
    first run, then cached locally.
    """

    def __init__(self, model_name: str | None = None, batch_size: int = _BATCH_LIMIT) -> None:
        self._model_name = model_name or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model_name, 384)
        self._batch_size = batch_size
        self._model = None  # Lazy-loaded
        self._init_task: asyncio.Task | None = None
        self._load_count = 0

    async def initialize(self) -> None:
        """Load the model once; concurrent callers share the in-flight load."""
        if self._model is not None:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._load_model())
        task = self._init_task
        try:
            # shield: a cancelled caller must not cancel the shared load
            await asyncio.shield(task)
        except Exception:
            if self._init_task is task:
                self._init_task = None
            raise

    async def _load_model(self) -> None:
        self._load_count += 1
        logger.info("loading_fastembed_model", model=self._model_name)
        try:
            from fastembed import TextEmbedding

            self._model = await asyncio.to_thread(TextEmbedding, model_name=self._model_name)
        except Exception as exc:
            raise EmbeddingProviderUnavailableError(
                message=f"Failed to load fastembed model '{self._model_name}': {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        logger.info(
            "fastembed_model_loaded",
            model=self._model_name,
            dimension=self._dimension,
        )

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts."""
        if not texts:
            return []

        await self.initialize()

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), self._batch_size):
                batch = texts[start : start + self._batch_size]
                # fastembed returns a generator of numpy arrays; inference is
                # CPU-bound so it runs off the event loop.
                vectors = await asyncio.to_thread(lambda b=batch: list(self._model.embed(b)))
                all_embeddings.extend(v.tolist() for v in vectors)
            return all_embeddings
        except Exception as exc:
            raise EmbeddingProviderUnavailableError(
                message=f"Fastembed embedding error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        result = await self.embed([text])
        return result[0]

    def get_model(self) -> str:
        return self._model_name

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "local"

    async def is_available(self) -> bool:
        """Initialize (if needed) and run a test embedding."""
        try:
            await self.embed(["test"])
        except EmbeddingProviderUnavailableError as exc:
            logger.warning("fastembed_unavailable", model=self._model_name, error=str(exc))
            return False
        return True
