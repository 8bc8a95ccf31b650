"""Completion providers and the factory selecting one from configuration."""
from __future__ import annotations

from functools import lru_cache

from .base import LLMProvider, LLMProviderError
from .mock import MockLLMProvider

__all__ = [
    "LLMProvider",
    "LLMProviderError",
    "MockLLMProvider",
    "get_llm_provider",
    "reset_llm_provider_cache",
]


@lru_cache()
def get_llm_provider() -> LLMProvider:
    """Return a lazily initialised provider based on ``LLM_PROVIDER``."""

    from policy_decoder.config import get_settings

    settings = get_settings()
    backend = settings.llm_provider

    if backend == "mock":
        return MockLLMProvider()

    if backend == "openai":
        from .openai_chat import OpenAIChatProvider

        return OpenAIChatProvider(model=settings.llm_model, temperature=settings.llm_temperature)

    raise ValueError(f"Unsupported LLM_PROVIDER backend: {backend!r}")


def reset_llm_provider_cache() -> None:
    """Clear the cached provider (primarily for testing)."""

    get_llm_provider.cache_clear()
