"""In-memory session store with sliding-window expiry.

Every record is paired with exactly one expiry timer. The pair is created,
swapped and destroyed under a single lock, and each timer carries the
generation it was armed for, so a timer that fires after a refresh or delete
finds a newer generation (or no entry) and leaves the store alone.
"""
from __future__ import annotations

import itertools
import logging
import secrets
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Dict, Optional

from policy_decoder.telemetry import log_event

from .models import SessionInfo, SessionRecord, SessionStats
from .scheduler import Scheduler, ThreadingTimerScheduler, TimerHandle

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30 * 60
DEFAULT_CATEGORY = "document"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(slots=True)
class _Entry:
    record: SessionRecord
    timer: TimerHandle
    generation: int


class SessionStore:
    """Holds session payloads in memory for a bounded inactivity window."""

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        *,
        scheduler: Optional[Scheduler] = None,
        clock: Callable[[], float] = time.monotonic,
        wall_clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.timeout = float(timeout)
        self._scheduler = scheduler or ThreadingTimerScheduler()
        self._clock = clock
        self._wall_clock = wall_clock
        self._entries: Dict[str, _Entry] = {}
        self._lock = threading.RLock()
        self._generations = itertools.count(1)
        self._id_counter = itertools.count(1)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _new_id(self, category: str) -> str:
        tag = "".join(ch for ch in category.lower() if ch.isalnum()) or DEFAULT_CATEGORY
        return f"{tag}-{time.time_ns()}-{next(self._id_counter)}-{secrets.token_hex(4)}"

    def _arm(self, session_id: str) -> tuple[TimerHandle, int]:
        generation = next(self._generations)
        timer = self._scheduler.schedule(
            self.timeout, lambda: self._expire(session_id, generation)
        )
        return timer, generation

    def put(self, payload: Any, category: str = DEFAULT_CATEGORY) -> str:
        """Store ``payload`` under a freshly generated id and return the id.

        ``None`` is rejected because :meth:`get` uses it to report a miss.
        """

        if payload is None:
            raise ValueError("payload must not be None")
        with self._lock:
            session_id = self._new_id(category)
            while session_id in self._entries:  # pragma: no cover - practically unreachable
                session_id = self._new_id(category)
            now = self._wall_clock()
            record = SessionRecord(
                id=session_id,
                payload=payload,
                created_at=now,
                last_accessed_at=now,
                last_accessed_monotonic=self._clock(),
            )
            timer, generation = self._arm(session_id)
            self._entries[session_id] = _Entry(record=record, timer=timer, generation=generation)
            count = len(self._entries)

        log_event(
            LOGGER,
            "session.put",
            session_id=session_id,
            timeout_seconds=self.timeout,
            active_sessions=count,
        )
        return session_id

    def get(self, session_id: str) -> Optional[Any]:
        """Return the payload for ``session_id`` and restart its expiry window.

        ``None`` means the session expired or never existed.
        """

        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None:
                return None
            entry.timer.cancel()
            entry.timer, entry.generation = self._arm(session_id)
            entry.record.last_accessed_at = self._wall_clock()
            entry.record.last_accessed_monotonic = self._clock()
            payload = entry.record.payload

        LOGGER.debug("Refreshed session %s", session_id)
        return payload

    def delete(self, session_id: str) -> bool:
        """Remove ``session_id`` immediately. Returns ``False`` if it was unknown."""

        with self._lock:
            entry = self._entries.pop(session_id, None)
            if entry is None:
                return False
            entry.timer.cancel()
            count = len(self._entries)

        log_event(LOGGER, "session.deleted", session_id=session_id, active_sessions=count)
        return True

    def stats(self) -> SessionStats:
        """Snapshot of active sessions; does not touch expiry timers."""

        with self._lock:
            now = self._clock()
            sessions = [
                SessionInfo(
                    id=entry.record.id,
                    created_at=entry.record.created_at,
                    last_accessed_at=entry.record.last_accessed_at,
                    idle_seconds=max(0.0, now - entry.record.last_accessed_monotonic),
                )
                for entry in self._entries.values()
            ]
        return SessionStats(count=len(sessions), sessions=sessions)

    def close(self) -> None:
        """Cancel every timer and purge every record."""

        with self._lock:
            entries = list(self._entries.values())
            self._entries.clear()
            for entry in entries:
                entry.timer.cancel()
        if entries:
            log_event(LOGGER, "session.purged", purged=len(entries))

    def _expire(self, session_id: str, generation: int) -> None:
        with self._lock:
            entry = self._entries.get(session_id)
            if entry is None or entry.generation != generation:
                return
            del self._entries[session_id]
            idle = self._clock() - entry.record.last_accessed_monotonic
            count = len(self._entries)

        log_event(
            LOGGER,
            "session.expired",
            session_id=session_id,
            idle_seconds=round(idle, 3),
            active_sessions=count,
        )


@lru_cache()
def get_session_store() -> SessionStore:
    """Return the process-wide session store configured from the environment."""

    from policy_decoder.config import get_settings

    return SessionStore(timeout=get_settings().session_timeout_seconds)


def reset_session_store() -> None:
    """Close and forget the process-wide store (primarily for testing)."""

    if get_session_store.cache_info().currsize:
        get_session_store().close()
    get_session_store.cache_clear()
