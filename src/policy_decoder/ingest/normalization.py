"""Text sanitisation and normalisation utilities."""
from __future__ import annotations

import re
import unicodedata
from typing import Iterable

# C0 and C1 control ranges, minus tab, line feed and carriage return.
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f-\x9f]")
_WHITESPACE_RE = re.compile(r"\s+")

UNIT_SEPARATOR = "\n\n"


def sanitize_text(text: str) -> str:
    """Strip control characters and collapse whitespace runs to single spaces."""

    if not text:
        return ""
    cleaned = _CONTROL_CHARS_RE.sub("", text)
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def join_unit(fragments: Iterable[str]) -> str:
    """Join sanitised fragments of one structural unit with single spaces."""

    return " ".join(fragment for fragment in fragments if fragment)


def join_units(units: Iterable[str]) -> str:
    """Join units with a blank line, normalise to NFC and trim the result."""

    text = UNIT_SEPARATOR.join(units)
    return unicodedata.normalize("NFC", text).strip()


def contains_control_characters(text: str) -> bool:
    return _CONTROL_CHARS_RE.search(text) is not None
