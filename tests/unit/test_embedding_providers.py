"""Unit tests for embedding provider adapters: OpenAI and fastembed."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import numpy as np
import openai
import pytest

from songmatch.config.settings import Settings
from songmatch.utils.errors import EmbeddingProviderUnavailableError


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_embedding_model": "",
        "embedding_dimensions": 0,
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _embedding_response(*vectors: list[float]) -> MagicMock:
    response = MagicMock()
    response.data = [MagicMock(embedding=v) for v in vectors]
    response.usage = MagicMock(total_tokens=10)
    return response


# ======================================================================
# OpenAI Embedding Provider
# ======================================================================


class TestOpenAIEmbeddingProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_get_provider_name(self, settings: Settings) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        assert OpenAIEmbeddingProvider(settings).get_provider_name() == "openai"

    def test_default_model_and_dimension(self, settings: Settings) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        provider = OpenAIEmbeddingProvider(settings)
        assert provider.get_model() == "text-embedding-3-small"
        assert provider.get_dimension() == 1536

    def test_large_model_dimension(self) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        provider = OpenAIEmbeddingProvider(_settings(openai_embedding_model="text-embedding-3-large"))
        assert provider.get_dimension() == 3072

    def test_reduced_dimensions_for_v3_models(self) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        provider = OpenAIEmbeddingProvider(_settings(embedding_dimensions=384))
        assert provider.get_dimension() == 384

    def test_reduced_dimensions_ignored_for_ada(self) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        provider = OpenAIEmbeddingProvider(
            _settings(openai_embedding_model="text-embedding-ada-002", embedding_dimensions=384)
        )
        assert provider.get_dimension() == 1536

    @pytest.mark.asyncio
    async def test_is_available_without_key(self) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""))
        assert await provider.is_available() is False

    @pytest.mark.asyncio
    async def test_is_available_probe_cached(self, settings: Settings) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1] * 1536))

        with patch(
            "songmatch.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            assert await provider.is_available() is True
            assert await provider.is_available() is True

        assert mock_client.embeddings.create.await_count == 1

    @pytest.mark.asyncio
    async def test_embed_success(self, settings: Settings) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            return_value=_embedding_response([0.1] * 1536, [0.2] * 1536)
        )

        with patch(
            "songmatch.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            result = await provider.embed(["hello", "world"])

        assert len(result) == 2
        assert len(result[0]) == 1536
        kwargs = mock_client.embeddings.create.call_args.kwargs
        assert kwargs["model"] == "text-embedding-3-small"
        assert "dimensions" not in kwargs

    @pytest.mark.asyncio
    async def test_embed_sends_dimensions_parameter(self) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(return_value=_embedding_response([0.1] * 384))

        with patch(
            "songmatch.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(_settings(embedding_dimensions=384))
            await provider.embed_single("hello")

        assert mock_client.embeddings.create.call_args.kwargs["dimensions"] == 384

    @pytest.mark.asyncio
    async def test_embed_batches_with_delay(self, settings: Settings) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=lambda **kw: _embedding_response(*([0.0] * 3 for _ in kw["input"]))
        )

        with patch(
            "songmatch.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ), patch(
            "songmatch.providers.embedding.openai_embedding_provider.asyncio.sleep",
            new=AsyncMock(),
        ) as mock_sleep:
            provider = OpenAIEmbeddingProvider(settings, batch_size=2)
            result = await provider.embed(["a", "b", "c", "d", "e"])

        assert len(result) == 5
        assert mock_client.embeddings.create.await_count == 3
        assert mock_sleep.await_count == 2

    @pytest.mark.asyncio
    async def test_embed_empty(self, settings: Settings) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        assert await OpenAIEmbeddingProvider(settings).embed([]) == []

    @pytest.mark.asyncio
    async def test_embed_without_key_raises(self) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
        provider = OpenAIEmbeddingProvider(_settings(openai_api_key=""))
        with pytest.raises(EmbeddingProviderUnavailableError):
            await provider.embed(["x"])

    @pytest.mark.asyncio
    async def test_embed_error(self, settings: Settings) -> None:
        from songmatch.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

        mock_client = AsyncMock()
        mock_client.embeddings.create = AsyncMock(
            side_effect=openai.APIError(message="server error", request=MagicMock(), body=None)
        )

        with patch(
            "songmatch.providers.embedding.openai_embedding_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAIEmbeddingProvider(settings)
            with pytest.raises(EmbeddingProviderUnavailableError) as exc_info:
                await provider.embed(["hello"])

        assert exc_info.value.provider_name == "openai"
        assert await provider.is_available() is False


# ======================================================================
# FastEmbed Embedding Provider
# ======================================================================


def _fake_text_embedding(dimension: int = 384) -> MagicMock:
    model = MagicMock()
    model.embed.side_effect = lambda texts: iter(
        np.full(dimension, 0.5, dtype=np.float32) for _ in texts
    )
    return model


class TestFastEmbedEmbeddingProvider:
    def test_defaults(self) -> None:
        from songmatch.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )
        provider = FastEmbedEmbeddingProvider()
        assert provider.get_provider_name() == "local"
        assert provider.get_model() == "sentence-transformers/all-MiniLM-L6-v2"
        assert provider.get_dimension() == 384

    @pytest.mark.asyncio
    async def test_embed_batches(self) -> None:
        from songmatch.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )
        model = _fake_text_embedding()
        with patch("fastembed.TextEmbedding", return_value=model):
            provider = FastEmbedEmbeddingProvider(batch_size=32)
            result = await provider.embed([f"text {i}" for i in range(70)])

        assert len(result) == 70
        assert len(result[0]) == 384
        assert isinstance(result[0][0], float)
        assert model.embed.call_count == 3

    @pytest.mark.asyncio
    async def test_concurrent_initialize_loads_once(self) -> None:
        from songmatch.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )
        with patch("fastembed.TextEmbedding", return_value=_fake_text_embedding()) as ctor:
            provider = FastEmbedEmbeddingProvider()
            await asyncio.gather(*(provider.initialize() for _ in range(5)))

        assert ctor.call_count == 1
        assert provider._load_count == 1

    @pytest.mark.asyncio
    async def test_load_failure_is_retryable(self) -> None:
        from songmatch.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )
        with patch(
            "fastembed.TextEmbedding",
            side_effect=[RuntimeError("download failed"), _fake_text_embedding()],
        ):
            provider = FastEmbedEmbeddingProvider()
            with pytest.raises(EmbeddingProviderUnavailableError):
                await provider.initialize()
            assert await provider.is_available() is True

    @pytest.mark.asyncio
    async def test_is_available_false_when_model_cannot_load(self) -> None:
        from songmatch.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )
        with patch("fastembed.TextEmbedding", side_effect=RuntimeError("no onnx")):
            provider = FastEmbedEmbeddingProvider()
            assert await provider.is_available() is False

    @pytest.mark.asyncio
    async def test_embed_empty_skips_model_load(self) -> None:
        from songmatch.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )
        with patch("fastembed.TextEmbedding") as ctor:
            provider = FastEmbedEmbeddingProvider()
            assert await provider.embed([]) == []
        ctor.assert_not_called()
