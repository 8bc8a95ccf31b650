"""Utilities for detecting the format of uploaded documents."""
from __future__ import annotations

import mimetypes
from enum import Enum
from pathlib import Path
from typing import Optional

from .errors import InvalidInputError


class DocumentFormat(str, Enum):
    """Supported document formats."""

    PDF = "pdf"
    DOCX = "docx"
    TXT = "txt"


class DocumentFormatDetector:
    """Detects the document format from its leading bytes, MIME type and file name."""

    _MIME_MAP = {
        "application/pdf": DocumentFormat.PDF,
        "application/x-pdf": DocumentFormat.PDF,
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document": DocumentFormat.DOCX,
        "text/plain": DocumentFormat.TXT,
    }

    _PDF_MAGIC = b"%PDF-"
    _ZIP_MAGIC = b"PK\x03\x04"

    @classmethod
    def detect(
        cls,
        head: bytes,
        file_name: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> DocumentFormat:
        """Return the detected document format.

        A PDF signature at the start of the file always wins, since browsers
        often send ``application/octet-stream``. A signature further into the
        first kilobyte only counts when the upload does not claim to be plain
        text. Otherwise the declared MIME type is considered, then
        ``mimetypes.guess_type`` and finally the suffix.
        """

        declared = (mime_type or "").split(";", 1)[0].strip().lower()
        suffix = Path(file_name).suffix.lower().lstrip(".") if file_name else ""
        claims_text = cls._MIME_MAP.get(declared) is DocumentFormat.TXT or suffix == "txt"

        if head[:1024].lstrip(b"\x00\t\n\r\f ").startswith(cls._PDF_MAGIC):
            return DocumentFormat.PDF
        if not claims_text and cls._PDF_MAGIC in head[:1024]:
            return DocumentFormat.PDF

        if declared in cls._MIME_MAP:
            return cls._MIME_MAP[declared]

        if file_name:
            guessed_type, _ = mimetypes.guess_type(file_name)
            if guessed_type and guessed_type in cls._MIME_MAP:
                return cls._MIME_MAP[guessed_type]

            try:
                return DocumentFormat(suffix)
            except ValueError:
                pass

        if head.startswith(cls._ZIP_MAGIC):
            return DocumentFormat.DOCX

        raise InvalidInputError(f"Unsupported file format: {file_name or declared or 'unknown'}")
