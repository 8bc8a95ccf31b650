"""Ephemeral, time-boxed storage of session payloads."""
from __future__ import annotations

from .models import POLICY_CATEGORIES, DocumentPayload, SessionInfo, SessionRecord, SessionStats
from .scheduler import Scheduler, ThreadingTimerScheduler, TimerHandle
from .store import SessionStore, get_session_store, reset_session_store

__all__ = [
    "DocumentPayload",
    "POLICY_CATEGORIES",
    "Scheduler",
    "SessionInfo",
    "SessionRecord",
    "SessionStats",
    "SessionStore",
    "ThreadingTimerScheduler",
    "TimerHandle",
    "get_session_store",
    "reset_session_store",
]
