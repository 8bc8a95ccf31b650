"""High level ingestion pipeline entry point."""
from __future__ import annotations

import logging
import time
from typing import Dict, List, Optional, Union

from policy_decoder.telemetry import log_event

from .errors import ExtractionError, InvalidInputError, TooComplexError, TooLargeError
from .extractors import DocxExtractor, PDFExtractor, TextExtractor
from .format_detection import DocumentFormat, DocumentFormatDetector
from .models import ExtractedText, Limits, ParsedDocument, RawDocument, RawFragment
from .normalization import join_unit, join_units, sanitize_text

LOGGER = logging.getLogger(__name__)


class FragmentDecodeError(ValueError):
    """Raised when a single text fragment cannot be decoded."""


def decode_fragment(fragment: RawFragment) -> str:
    """Decode a raw fragment into a well-formed Unicode string.

    Byte fragments must be valid UTF-8. String fragments produced by the PDF
    decoder may still carry lone surrogates from broken ``ToUnicode`` maps; those
    are rejected as well.
    """

    try:
        if isinstance(fragment, bytes):
            return fragment.decode("utf-8")
        fragment.encode("utf-8")
        return fragment
    except UnicodeError as error:
        raise FragmentDecodeError(str(error)) from error


class IngestPipeline:
    """Turns an untrusted upload into sanitised, size-bounded text."""

    def __init__(self, limits: Optional[Limits] = None) -> None:
        self.limits = limits or Limits()
        self._extractors: Dict[DocumentFormat, Union[PDFExtractor, DocxExtractor, TextExtractor]] = {
            DocumentFormat.PDF: PDFExtractor(),
            DocumentFormat.DOCX: DocxExtractor(),
            DocumentFormat.TXT: TextExtractor(),
        }

    def extract(self, raw: Optional[RawDocument], limits: Optional[Limits] = None) -> ExtractedText:
        """Extract sanitised text from ``raw``.

        The backing temporary file of ``raw`` is removed before this method
        returns, whether extraction succeeded or not.
        """

        limits = limits or self.limits
        started = time.perf_counter()
        try:
            result = self._extract(raw, limits)
        except ExtractionError as error:
            log_event(
                LOGGER,
                "ingest.extract",
                level="warning",
                status="rejected",
                kind=error.kind,
                reason=str(error),
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            raise
        finally:
            if raw is not None:
                raw.discard()

        log_event(
            LOGGER,
            "ingest.extract",
            status="ok",
            units=result.unit_count,
            chars=len(result.text),
            truncated=result.truncated,
            skipped_fragments=result.skipped_fragments,
            duration_ms=(time.perf_counter() - started) * 1000,
        )
        return result

    def _extract(self, raw: Optional[RawDocument], limits: Limits) -> ExtractedText:
        if raw is None or raw.declared_size <= 0:
            raise InvalidInputError("No document provided or the document is empty")
        if raw.declared_size > limits.max_bytes:
            raise TooLargeError(
                f"Document is {raw.declared_size} bytes; the maximum is {limits.max_bytes} bytes"
            )

        try:
            data = raw.read(limits.max_bytes + 1)
        except (OSError, ValueError) as error:
            raise InvalidInputError(f"Document could not be read: {error}", cause=error) from error
        if not data:
            raise InvalidInputError("Document is empty")
        if len(data) > limits.max_bytes:
            raise TooLargeError(f"Document exceeds the maximum of {limits.max_bytes} bytes")

        document_format = DocumentFormatDetector.detect(data, raw.filename, raw.media_type)
        LOGGER.info("Parsing %s document of %s bytes", document_format.value, len(data))

        parsed: ParsedDocument = self._extractors[document_format].parse(data)
        if parsed.unit_count > limits.max_units:
            raise TooComplexError(
                f"Document has {parsed.unit_count} pages; the maximum is {limits.max_units}"
            )

        units: List[str] = []
        skipped = 0
        for unit in parsed.iter_units():
            if unit.error is not None:
                skipped += 1
                continue

            fragments: List[str] = []
            for raw_fragment in unit.fragments:
                try:
                    decoded = decode_fragment(raw_fragment)
                except FragmentDecodeError as error:
                    LOGGER.debug("Skipping undecodable fragment on unit %s: %s", unit.number, error)
                    skipped += 1
                    continue
                fragments.append(sanitize_text(decoded))
            unit_text = join_unit(fragments)
            if unit_text:
                units.append(unit_text)

        if skipped:
            LOGGER.info("Skipped %s undecodable fragments", skipped)

        text = join_units(units)
        truncated = len(text) > limits.max_chars
        if truncated:
            text = text[: limits.max_chars].rstrip()
        return ExtractedText(
            text=text,
            unit_count=parsed.unit_count,
            truncated=truncated,
            skipped_fragments=skipped,
        )


def extract(raw: Optional[RawDocument], limits: Optional[Limits] = None) -> ExtractedText:
    """Module level shortcut for :meth:`IngestPipeline.extract`."""

    return IngestPipeline(limits).extract(raw)
