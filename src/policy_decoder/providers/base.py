"""Base provider interface for language models."""

from __future__ import annotations

from abc import ABC, abstractmethod

__all__ = ["LLMProvider", "LLMProviderError"]


class LLMProviderError(RuntimeError):
    """Raised when the completion backend fails to produce an answer."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class LLMProvider(ABC):
    """Abstract interface for large language model providers."""

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int = 500) -> str:
        """Generate text from the given prompt."""
