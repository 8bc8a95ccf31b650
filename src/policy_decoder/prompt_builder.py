"""Utilities for constructing prompts for the policy assistant."""
from __future__ import annotations

from pathlib import Path

from policy_decoder.sessions.models import POLICY_CATEGORIES

_PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"
_SYSTEM_PROMPT_PATH = _PROMPTS_DIR / "system.txt"
_ANALYSIS_PROMPT_PATH = _PROMPTS_DIR / "analysis.md"
_USER_PROMPT_PATH = _PROMPTS_DIR / "user.md"

TRUNCATION_MARKER = "... [text truncated due to length] ..."


def _load_template(path: Path) -> str:
    """Read and trim the contents of a template file."""
    return path.read_text(encoding="utf-8").strip()


_SYSTEM_TEXT = _load_template(_SYSTEM_PROMPT_PATH)
_ANALYSIS_TEMPLATE = _load_template(_ANALYSIS_PROMPT_PATH)
_USER_TEMPLATE = _load_template(_USER_PROMPT_PATH)


def _document_block(text: str, limit: int) -> str:
    if limit <= 0:
        raise ValueError("limit must be positive")
    if len(text) <= limit:
        return f"<document>\n{text}\n</document>"
    return f"<document>\n{text[:limit]}\n</document>\n{TRUNCATION_MARKER}"


def build_analysis_prompt(text: str, limit: int) -> str:
    """Compose the prompt asking the model to classify and summarise a policy."""

    instructions = _ANALYSIS_TEMPLATE.format(categories=", ".join(POLICY_CATEGORIES))
    return f"{_SYSTEM_TEXT}\n\n{_document_block(text, limit)}\n\n{instructions}".strip()


def build_chat_prompt(question: str, text: str, limit: int) -> str:
    """Compose the full prompt used for answering a question about a policy."""

    if question is None:
        raise ValueError("question must not be None")

    user_block = _USER_TEMPLATE.format(question=question.strip())
    return f"{_SYSTEM_TEXT}\n\n{_document_block(text, limit)}\n\n{user_block}".strip()


__all__ = ["TRUNCATION_MARKER", "build_analysis_prompt", "build_chat_prompt"]
