"""Unit tests for the OpenAI LLM provider adapter."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import openai
import pytest

from songmatch.config.settings import Settings
from songmatch.utils.errors import LLMError, RateLimitError


def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_text_model": "",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _completion(content: str | None) -> MagicMock:
    response = MagicMock()
    response.choices = [MagicMock(message=MagicMock(content=content))]
    response.usage = MagicMock(prompt_tokens=20, completion_tokens=40)
    return response


class TestOpenAILLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_get_provider_name(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider
        assert OpenAILLMProvider(settings).get_provider_name() == "openai"

    def test_custom_base_url_label(self) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider
        provider = OpenAILLMProvider(_settings(openai_base_url="http://localhost:8080/v1"))
        assert provider.get_provider_name() == "openai-compatible"

    def test_default_model(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider
        assert OpenAILLMProvider(settings).get_model() == "gpt-4o-mini"

    def test_is_available_with_key(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider
        assert OpenAILLMProvider(settings).is_available() is True

    def test_is_available_without_key(self) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider
        assert OpenAILLMProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_complete_success(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_completion("A warm glow."))

        with patch(
            "songmatch.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAILLMProvider(settings)
            result = await provider.complete("system", "user", temperature=0.7, max_tokens=200)

        assert result == "A warm glow."
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["temperature"] == 0.7
        assert kwargs["max_tokens"] == 200
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    @pytest.mark.asyncio
    async def test_complete_empty_content_raises(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=_completion(None))

        with patch(
            "songmatch.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(LLMError):
                await provider.complete("s", "u")

    @pytest.mark.asyncio
    async def test_rate_limit_maps_to_rate_limit_error(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider

        response = MagicMock(status_code=429, headers={})
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.RateLimitError(message="slow down", response=response, body=None)
        )

        with patch(
            "songmatch.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(RateLimitError) as exc_info:
                await provider.complete("s", "u")

        assert exc_info.value.provider_name == "openai"

    @pytest.mark.asyncio
    async def test_api_error_maps_to_llm_error(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            side_effect=openai.APIError(message="bad gateway", request=MagicMock(), body=None)
        )

        with patch(
            "songmatch.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAILLMProvider(settings)
            with pytest.raises(LLMError) as exc_info:
                await provider.complete("s", "u")

        assert not isinstance(exc_info.value, RateLimitError)

    @pytest.mark.asyncio
    async def test_validate_credentials(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(return_value=[])

        with patch(
            "songmatch.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAILLMProvider(settings)
            assert await provider.validate_credentials() is True

    @pytest.mark.asyncio
    async def test_validate_credentials_failure(self, settings: Settings) -> None:
        from songmatch.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.models.list = AsyncMock(
            side_effect=openai.APIError(message="unauthorized", request=MagicMock(), body=None)
        )

        with patch(
            "songmatch.providers.llm.openai_provider.openai.AsyncOpenAI",
            return_value=mock_client,
        ):
            provider = OpenAILLMProvider(settings)
            assert await provider.validate_credentials() is False
