"""Process-wide settings read once from the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Optional

from policy_decoder.ingest.models import (
    DEFAULT_MAX_BYTES,
    DEFAULT_MAX_CHARS,
    DEFAULT_MAX_UNITS,
    Limits,
)

DEFAULT_SESSION_TIMEOUT_SECONDS = 30 * 60
DEFAULT_PROMPT_TEXT_LIMIT = 8000


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class Settings:
    max_upload_bytes: int = DEFAULT_MAX_BYTES
    max_units: int = DEFAULT_MAX_UNITS
    max_text_chars: int = DEFAULT_MAX_CHARS
    session_timeout_seconds: float = DEFAULT_SESSION_TIMEOUT_SECONDS
    prompt_text_limit: int = DEFAULT_PROMPT_TEXT_LIMIT
    upload_tmp_dir: Optional[Path] = None
    llm_provider: str = "mock"
    llm_model: str = "gpt-4o"
    llm_temperature: float = 0.7
    llm_max_tokens: int = 500
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        tmp_dir = os.getenv("UPLOAD_TMP_DIR", "").strip()
        return cls(
            max_upload_bytes=_env_int("MAX_UPLOAD_BYTES", DEFAULT_MAX_BYTES),
            max_units=_env_int("MAX_UNITS", DEFAULT_MAX_UNITS),
            max_text_chars=_env_int("MAX_TEXT_CHARS", DEFAULT_MAX_CHARS),
            session_timeout_seconds=_env_int(
                "SESSION_TIMEOUT_SECONDS", DEFAULT_SESSION_TIMEOUT_SECONDS
            ),
            prompt_text_limit=_env_int("PROMPT_TEXT_LIMIT", DEFAULT_PROMPT_TEXT_LIMIT),
            upload_tmp_dir=Path(tmp_dir) if tmp_dir else None,
            llm_provider=os.getenv("LLM_PROVIDER", "mock").strip().lower() or "mock",
            llm_model=os.getenv("LLM_MODEL", "gpt-4o").strip() or "gpt-4o",
            llm_temperature=_env_float("LLM_TEMPERATURE", 0.7),
            llm_max_tokens=_env_int("LLM_MAX_TOKENS", 500),
            log_level=os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO",
        )

    @property
    def limits(self) -> Limits:
        return Limits(
            max_bytes=self.max_upload_bytes,
            max_units=self.max_units,
            max_chars=self.max_text_chars,
        )


@lru_cache()
def get_settings() -> Settings:
    """Return the settings captured from the environment on first use."""

    return Settings.from_env()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for testing)."""

    get_settings.cache_clear()
