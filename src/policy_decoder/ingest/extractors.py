"""Structural parsers for supported document types.

Each extractor turns raw bytes into a :class:`ParsedDocument`: the unit count
is known as soon as ``parse`` returns, while fragment extraction for each unit
happens lazily so the pipeline can reject overly complex documents before
doing the expensive work.
"""
from __future__ import annotations

import codecs
import io
import logging
from typing import Iterator, List

from docx import Document as DocxDocument
from docx.table import Table as DocxTable
from pypdf import PdfReader

from .errors import MalformedDocumentError
from .models import DocumentUnit, ParsedDocument, RawFragment

LOGGER = logging.getLogger(__name__)

_PAGE_BREAK = b"\f"
# Paragraph predicate: holds an explicit page break or ends a section.
_DOCX_BREAK_TEST = './/w:br[@w:type="page"] or ./w:pPr/w:sectPr'


class PDFExtractor:
    """Extract text-show fragments from PDF pages."""

    def parse(self, data: bytes) -> ParsedDocument:
        try:
            reader = PdfReader(io.BytesIO(data))
            if reader.is_encrypted:
                # Owner-password-only PDFs open with an empty user password.
                reader.decrypt("")
            unit_count = len(reader.pages)
        except Exception as error:
            raise MalformedDocumentError(f"Unable to parse PDF: {error}", cause=error) from error
        return ParsedDocument(unit_count, self._iter_pages(reader, unit_count))

    def _iter_pages(self, reader: PdfReader, unit_count: int) -> Iterator[DocumentUnit]:
        for index in range(unit_count):
            number = index + 1
            fragments: List[RawFragment] = []

            def _collect(text, *_args) -> None:
                if text:
                    fragments.append(text)

            try:
                reader.pages[index].extract_text(visitor_text=_collect)
            except Exception as error:  # pragma: no cover - depends on the pypdf backend
                LOGGER.warning("Failed to extract text from PDF page %s: %s", number, error)
                yield DocumentUnit(number=number, fragments=[], error=str(error))
                continue
            yield DocumentUnit(number=number, fragments=fragments)


class DocxExtractor:
    """Extract paragraphs and table cells from Microsoft Word documents.

    Layout pages are only known to a renderer, so units are the stretches
    between explicit page breaks and section breaks. A paragraph carrying a
    break closes the current unit.
    """

    def parse(self, data: bytes) -> ParsedDocument:
        try:
            document = DocxDocument(io.BytesIO(data))
            breaks = len(document.element.body.xpath(f"./w:p[{_DOCX_BREAK_TEST}]"))
        except Exception as error:
            raise MalformedDocumentError(f"Unable to parse DOCX: {error}", cause=error) from error
        return ParsedDocument(breaks + 1, self._iter_units(document))

    def _iter_units(self, document) -> Iterator[DocumentUnit]:
        number = 1
        fragments: List[RawFragment] = []
        for block in document.iter_inner_content():
            if isinstance(block, DocxTable):
                fragments.extend(cell.text for row in block.rows for cell in row.cells if cell.text)
                continue
            if block.text:
                fragments.append(block.text)
            if block._p.xpath(f"self::w:p[{_DOCX_BREAK_TEST}]"):
                yield DocumentUnit(number=number, fragments=fragments)
                number += 1
                fragments = []
        yield DocumentUnit(number=number, fragments=fragments)


class TextExtractor:
    """Split plain text into form-feed separated pages of lines.

    UTF-16 and BOM-marked UTF-8 documents are decoded up front. Anything else
    is left as raw byte lines so that each line is decoded on its own and an
    undecodable line only costs that line.
    """

    def parse(self, data: bytes) -> ParsedDocument:
        if data.startswith((codecs.BOM_UTF16_LE, codecs.BOM_UTF16_BE)):
            try:
                text = data.decode("utf-16")
            except UnicodeDecodeError as error:
                raise MalformedDocumentError(f"Invalid UTF-16 text: {error}", cause=error) from error
            pages: List[List[RawFragment]] = [page.splitlines() for page in text.split("\f")]
        else:
            if data.startswith(codecs.BOM_UTF8):
                data = data[len(codecs.BOM_UTF8):]
            pages = [page.splitlines() for page in data.split(_PAGE_BREAK)]
        return ParsedDocument(len(pages), self._iter_units(pages))

    @staticmethod
    def _iter_units(pages: List[List[RawFragment]]) -> Iterator[DocumentUnit]:
        for index, lines in enumerate(pages, start=1):
            yield DocumentUnit(number=index, fragments=[line for line in lines if line])
