"""Mock LLM provider that echoes prompts for deterministic testing."""
from __future__ import annotations

import json

from .base import LLMProvider

ANALYSIS_MARKER = "Respond with a single JSON object"


class MockLLMProvider(LLMProvider):
    """Return a deterministic response for any prompt.

    Analysis prompts get a fixed, well-formed summary so the upload flow works
    end to end without network access.
    """

    def complete(self, prompt: str, max_tokens: int = 500) -> str:
        del max_tokens  # Unused in the mock implementation.
        if ANALYSIS_MARKER in prompt:
            return json.dumps(
                {
                    "category": "other",
                    "provider": None,
                    "premium": None,
                    "excess": None,
                    "covered": [],
                    "not_covered": [],
                    "limits": [],
                    "summary": "MOCK_SUMMARY",
                }
            )
        return f"MOCK_ANSWER: {prompt[:100]}"
