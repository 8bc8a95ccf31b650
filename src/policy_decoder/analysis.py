"""Policy analysis and question answering on top of an :class:`LLMProvider`."""
from __future__ import annotations

import json
import logging
import re
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from policy_decoder.ingest.language import LanguageDetector
from policy_decoder.ingest.models import ExtractedText
from policy_decoder.prompt_builder import build_analysis_prompt, build_chat_prompt
from policy_decoder.providers.base import LLMProvider
from policy_decoder.sessions.models import POLICY_CATEGORIES, DocumentPayload

LOGGER = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

PolicyCategory = Literal["health", "car", "home", "life", "travel", "business", "other"]


class PolicySummary(BaseModel):
    """Structured fields the model derives from a policy document."""

    category: PolicyCategory = "other"
    provider: Optional[str] = None
    premium: Optional[str] = None
    excess: Optional[str] = None
    covered: List[str] = Field(default_factory=list)
    not_covered: List[str] = Field(default_factory=list)
    limits: List[str] = Field(default_factory=list)
    summary: Optional[str] = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalise_category(cls, value: object) -> object:
        if isinstance(value, str):
            value = value.strip().lower()
            if value not in POLICY_CATEGORIES:
                return "other"
        return value


def parse_policy_summary(completion: str) -> PolicySummary:
    """Parse the model output, falling back to an empty ``other`` summary."""

    match = _JSON_OBJECT_RE.search(completion or "")
    if match is None:
        LOGGER.warning("Analysis completion contained no JSON object")
        return PolicySummary()
    try:
        return PolicySummary.model_validate(json.loads(match.group(0)))
    except (ValueError, ValidationError) as error:
        LOGGER.warning("Analysis completion could not be parsed: %s", error)
        return PolicySummary()


class PolicyAnalyzer:
    """Builds session payloads from extracted text and answers questions on them."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        prompt_text_limit: int = 8000,
        max_tokens: int = 500,
        language_detector: Optional[LanguageDetector] = None,
    ) -> None:
        self.provider = provider
        self.prompt_text_limit = prompt_text_limit
        self.max_tokens = max_tokens
        self.language_detector = language_detector or LanguageDetector()

    def analyze(self, extracted: ExtractedText, filename: Optional[str] = None) -> DocumentPayload:
        prompt = build_analysis_prompt(extracted.text, self.prompt_text_limit)
        summary = parse_policy_summary(self.provider.complete(prompt, max_tokens=self.max_tokens))
        attributes = summary.model_dump(exclude={"category"})
        return DocumentPayload(
            text=extracted,
            filename=filename,
            category=summary.category,
            language=self.language_detector.detect(extracted.text),
            attributes=attributes,
        )

    def answer(self, question: str, payload: DocumentPayload) -> str:
        prompt = build_chat_prompt(question, payload.text.text, self.prompt_text_limit)
        return self.provider.complete(prompt, max_tokens=self.max_tokens).strip()
