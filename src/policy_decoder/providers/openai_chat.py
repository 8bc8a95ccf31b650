"""OpenAI chat completion provider backed by LangChain's ``ChatOpenAI``."""

from __future__ import annotations

import logging
import os

from langchain_core.messages import HumanMessage, SystemMessage
from langchain_openai import ChatOpenAI

from .base import LLMProvider, LLMProviderError

LOGGER = logging.getLogger(__name__)

SYSTEM_PROMPT = "You are a helpful assistant that answers questions about insurance policy documents."


class OpenAIChatProvider(LLMProvider):
    """Send prompts to an OpenAI-compatible chat endpoint.

    ``OPENAI_API_KEY`` is read by the client itself; ``LLM_BASE_URL`` points the
    client at any OpenAI-compatible server instead of the OpenAI cloud.
    """

    def __init__(self, model: str = "gpt-4o", temperature: float = 0.7) -> None:
        kwargs: dict = {"model": model, "temperature": temperature}
        base_url = os.getenv("LLM_BASE_URL", "").strip()
        if base_url:
            LOGGER.info("Using OpenAI-compatible endpoint: %s", base_url)
            kwargs["base_url"] = base_url
        self._client = ChatOpenAI(**kwargs)
        self.model = model

    def complete(self, prompt: str, max_tokens: int = 500) -> str:
        messages = [SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)]
        try:
            response = self._client.bind(max_tokens=max_tokens).invoke(messages)
        except Exception as exc:
            raise LLMProviderError(f"Completion request failed: {exc}", cause=exc) from exc
        content = response.content
        if isinstance(content, list):
            content = "".join(part if isinstance(part, str) else str(part.get("text", "")) for part in content)
        return str(content).strip()
