"""Centralised observability helpers for structured lifecycle logging."""

from __future__ import annotations

import logging
import os
import platform
import socket
import sys
import traceback
from typing import Any, Optional


LOGGER = logging.getLogger("policy_decoder.telemetry")

_ENV_KEYS_TO_LOG: tuple[str, ...] = (
    "MAX_UPLOAD_BYTES",
    "MAX_UNITS",
    "MAX_TEXT_CHARS",
    "SESSION_TIMEOUT_SECONDS",
    "PROMPT_TEXT_LIMIT",
    "UPLOAD_TMP_DIR",
    "LLM_PROVIDER",
    "LLM_MODEL",
    "LLM_TEMPERATURE",
    "LLM_MAX_TOKENS",
    "LOG_LEVEL",
)


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    session_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    extra: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema.

    Events carry identifiers, sizes and counts only. Document text must never be
    passed in ``details`` or ``payload``.
    """

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if session_id:
        event["session_id"] = session_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    if extra:
        event.update(extra)
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_app_startup_event() -> None:
    env_values = {key: os.getenv(key) for key in _ENV_KEYS_TO_LOG if os.getenv(key) is not None}
    details = {
        "env": env_values,
        "python": sys.version.split()[0],
        "platform": platform.platform(),
    }
    payload = {
        "pid": os.getpid(),
        "hostname": socket.gethostname(),
    }
    log_event(LOGGER, "app.startup", details=details, extra=payload)


def emit_app_shutdown_event(active_sessions: int) -> None:
    log_event(LOGGER, "app.shutdown", active_sessions=active_sessions)
