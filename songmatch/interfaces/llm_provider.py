"""Abstract base class for LLM providers.

Used only by the offline aboutness generator; the runtime retrieval path
never calls a language model.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAILLMProvider (songmatch/providers/llm/)
class ILLMProvider(ABC):
    """Contract for text-completion backends."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 400,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The instruction message that sets the model's behaviour.
        user_prompt:
            The request itself.
        temperature:
            Sampling temperature.
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        songmatch.utils.errors.RateLimitError
            If the provider rejected the call with a rate limit.
        songmatch.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    def get_model(self) -> str:
        """Return the model identifier used for completions."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a short identifier such as ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured (no network call)."""

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm credentials are valid."""
