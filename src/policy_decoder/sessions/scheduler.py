"""Timer scheduling used by the session store for expiry."""
from __future__ import annotations

import threading
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None:
        ...


class Scheduler(Protocol):
    """Runs ``callback`` once after ``delay`` seconds unless the handle is cancelled."""

    def schedule(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        ...


class ThreadingTimerScheduler:
    """Backs each expiry with a daemon :class:`threading.Timer`.

    Daemon timers never keep the interpreter alive, so pending expiries are
    simply dropped together with the sessions at process exit.
    """

    def __init__(self, name_prefix: str = "session-expiry") -> None:
        self._name_prefix = name_prefix

    def schedule(self, delay: float, callback: Callable[[], None]) -> threading.Timer:
        timer = threading.Timer(max(delay, 0.0), callback)
        timer.daemon = True
        timer.name = f"{self._name_prefix}-{id(timer):x}"
        timer.start()
        return timer
