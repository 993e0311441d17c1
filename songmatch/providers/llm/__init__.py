"""LLM provider adapters.

OpenAILLMProvider (gpt-4o-mini by default, also OpenAI-compatible APIs) is
the only implementation of ILLMProvider; it powers the offline aboutness
generator.
"""

from songmatch.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
