"""Bounded, sanitising text extraction for uploaded documents."""
from __future__ import annotations

from .errors import (
    ExtractionError,
    InvalidInputError,
    MalformedDocumentError,
    TooComplexError,
    TooLargeError,
)
from .models import ExtractedText, Limits, RawDocument
from .pipeline import IngestPipeline, extract
from .spool import sanitize_filename, spool_upload

__all__ = [
    "ExtractedText",
    "ExtractionError",
    "IngestPipeline",
    "InvalidInputError",
    "Limits",
    "MalformedDocumentError",
    "RawDocument",
    "TooComplexError",
    "TooLargeError",
    "extract",
    "sanitize_filename",
    "spool_upload",
]
