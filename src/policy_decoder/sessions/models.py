"""Records held by the ephemeral session store."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from policy_decoder.ingest.models import ExtractedText

POLICY_CATEGORIES = ("health", "car", "home", "life", "travel", "business", "other")


@dataclass(frozen=True, slots=True)
class DocumentPayload:
    """Extracted text of one upload plus the fields derived from it."""

    text: ExtractedText
    filename: Optional[str] = None
    category: str = "other"
    language: Optional[str] = None
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class SessionRecord:
    id: str
    payload: Any
    created_at: datetime
    last_accessed_at: datetime
    last_accessed_monotonic: float


@dataclass(frozen=True, slots=True)
class SessionInfo:
    """Read-only view of one session, safe to hand out of the store."""

    id: str
    created_at: datetime
    last_accessed_at: datetime
    idle_seconds: float


@dataclass(frozen=True, slots=True)
class SessionStats:
    count: int
    sessions: List[SessionInfo]

    @property
    def idle_seconds(self) -> Dict[str, float]:
        return {info.id: info.idle_seconds for info in self.sessions}
