"""Data models used by the ingestion pipeline."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional, Union

LOGGER = logging.getLogger(__name__)

DEFAULT_MAX_BYTES = 10 * 1024 * 1024
DEFAULT_MAX_UNITS = 100
DEFAULT_MAX_CHARS = 1_000_000

RawFragment = Union[str, bytes]


@dataclass(frozen=True, slots=True)
class Limits:
    """Resource bounds applied to a single extraction call."""

    max_bytes: int = DEFAULT_MAX_BYTES
    max_units: int = DEFAULT_MAX_UNITS
    max_chars: int = DEFAULT_MAX_CHARS


@dataclass(slots=True)
class RawDocument:
    """An uploaded document held either in memory or in a temporary file.

    The pipeline owns the document for the duration of one extraction call and
    calls :meth:`discard` on every exit path, which removes the backing file and
    drops the in-memory buffer.
    """

    data: Optional[bytes] = None
    path: Optional[Path] = None
    media_type: Optional[str] = None
    size: Optional[int] = None
    filename: Optional[str] = None
    _discarded: bool = field(default=False, repr=False)

    @classmethod
    def from_bytes(
        cls,
        data: bytes,
        *,
        media_type: Optional[str] = None,
        filename: Optional[str] = None,
        size: Optional[int] = None,
    ) -> "RawDocument":
        return cls(
            data=data,
            media_type=media_type,
            filename=filename,
            size=len(data) if size is None else size,
        )

    @classmethod
    def from_path(
        cls,
        path: Union[str, Path],
        *,
        media_type: Optional[str] = None,
        filename: Optional[str] = None,
        size: Optional[int] = None,
    ) -> "RawDocument":
        path = Path(path)
        if size is None:
            try:
                size = path.stat().st_size
            except OSError:
                size = 0
        return cls(path=path, media_type=media_type, filename=filename or path.name, size=size)

    @property
    def declared_size(self) -> int:
        if self.size is not None:
            return self.size
        if self.data is not None:
            return len(self.data)
        return 0

    @property
    def discarded(self) -> bool:
        return self._discarded

    def read(self, limit: int) -> bytes:
        """Return at most ``limit`` bytes of the document content."""

        if self._discarded:
            raise ValueError("document has already been discarded")
        if self.data is not None:
            return self.data[:limit]
        if self.path is None:
            return b""
        with self.path.open("rb") as handle:
            return handle.read(limit)

    def discard(self) -> None:
        """Remove the backing file and release the buffer. Safe to call repeatedly."""

        if self._discarded:
            return
        self._discarded = True
        self.data = None
        if self.path is None:
            return
        try:
            self.path.unlink(missing_ok=True)
        except OSError as error:
            LOGGER.warning("Failed to remove temporary upload %s: %s", self.path, error)


@dataclass(slots=True)
class DocumentUnit:
    """A page (or equivalent) of a parsed document and its undecoded fragments."""

    number: int
    fragments: List[RawFragment]
    error: Optional[str] = None


class ParsedDocument:
    """Result of the structural parse: a unit count plus lazily produced units."""

    def __init__(self, unit_count: int, units: Iterator[DocumentUnit]) -> None:
        self.unit_count = unit_count
        self._units = units

    def iter_units(self) -> Iterator[DocumentUnit]:
        return self._units


@dataclass(frozen=True, slots=True)
class ExtractedText:
    """Sanitised text produced from an uploaded document."""

    text: str
    unit_count: int
    truncated: bool = False
    skipped_fragments: int = 0

    def __len__(self) -> int:
        return len(self.text)
