"""Errors surfaced by the ingestion pipeline."""
from __future__ import annotations


class ExtractionError(Exception):
    """Base class for every failure the pipeline reports to its caller."""

    kind = "extraction_error"

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause


class InvalidInputError(ExtractionError):
    """The document is missing, empty or of an unsupported type."""

    kind = "invalid_input"


class TooLargeError(ExtractionError):
    """The document exceeds the configured byte limit."""

    kind = "too_large"


class TooComplexError(ExtractionError):
    """The document has more structural units than allowed."""

    kind = "too_complex"


class MalformedDocumentError(ExtractionError):
    """The document could not be decoded by the format parser."""

    kind = "malformed"
