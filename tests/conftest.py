"""Shared fixtures: a manually driven scheduler, a fake clock and document builders."""
from __future__ import annotations

import io
from dataclasses import dataclass
from typing import Callable, Iterator, List, Sequence

import pytest

from policy_decoder.config import reset_settings_cache
from policy_decoder.providers import reset_llm_provider_cache
from policy_decoder.sessions import reset_session_store


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@dataclass
class ManualTimer:
    due: float
    callback: Callable[[], None]
    honor_cancel: bool = True
    cancelled: bool = False
    fired: bool = False

    def cancel(self) -> None:
        self.cancelled = True

    @property
    def live(self) -> bool:
        return not self.fired and not (self.cancelled and self.honor_cancel)


class ManualScheduler:
    """Scheduler whose timers fire only from :meth:`advance`.

    With ``honor_cancel=False`` cancelled timers still fire, which reproduces a
    timer thread that was already running when the store cancelled it.
    """

    def __init__(self, clock: FakeClock, *, honor_cancel: bool = True) -> None:
        self.clock = clock
        self.honor_cancel = honor_cancel
        self.timers: List[ManualTimer] = []

    def schedule(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self.clock.now + delay, callback, honor_cancel=self.honor_cancel)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        target = self.clock.now + seconds
        while True:
            due = [timer for timer in self.timers if timer.live and timer.due <= target]
            if not due:
                break
            timer = min(due, key=lambda item: item.due)
            self.clock.now = max(self.clock.now, timer.due)
            timer.fired = True
            timer.callback()
        self.clock.now = target

    @property
    def pending(self) -> List[ManualTimer]:
        return [timer for timer in self.timers if not timer.fired and not timer.cancelled]


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def scheduler(clock: FakeClock) -> ManualScheduler:
    return ManualScheduler(clock)


@pytest.fixture(autouse=True)
def _reset_process_singletons() -> Iterator[None]:
    yield
    reset_session_store()
    reset_llm_provider_cache()
    reset_settings_cache()


def _escape_pdf_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")


def build_pdf(page_texts: Sequence[str]) -> bytes:
    """Build a minimal, well-formed PDF with one Helvetica text line per page."""

    objects: List[bytes] = []
    kids = " ".join(f"{4 + 2 * index} 0 R" for index in range(len(page_texts)))
    objects.append(b"<< /Type /Catalog /Pages 2 0 R >>")
    objects.append(f"<< /Type /Pages /Kids [{kids}] /Count {len(page_texts)} >>".encode("ascii"))
    objects.append(b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")
    for index, text in enumerate(page_texts):
        stream = f"BT /F1 12 Tf 20 120 Td ({_escape_pdf_text(text)}) Tj ET".encode("latin-1")
        objects.append(
            (
                "<< /Type /Page /Parent 2 0 R /MediaBox [0 0 300 200] "
                f"/Contents {5 + 2 * index} 0 R /Resources << /Font << /F1 3 0 R >> >> >>"
            ).encode("ascii")
        )
        objects.append(b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream")

    out = bytearray(b"%PDF-1.4\n")
    offsets: List[int] = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n".encode("ascii") + body + b"\nendobj\n"
    xref_offset = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode("ascii")
    out += b"0000000000 65535 f \n"
    for offset in offsets:
        out += f"{offset:010d} 00000 n \n".encode("ascii")
    out += (
        f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref_offset}\n%%EOF\n"
    ).encode("ascii")
    return bytes(out)


def build_docx(*pages: Sequence[str]) -> bytes:
    """Build a DOCX with an explicit page break between consecutive pages."""

    from docx import Document

    document = Document()
    for index, paragraphs in enumerate(pages):
        if index:
            document.add_page_break()
        for paragraph in paragraphs:
            document.add_paragraph(paragraph)
    buffer = io.BytesIO()
    document.save(buffer)
    return buffer.getvalue()


@pytest.fixture()
def pdf_factory() -> Callable[[Sequence[str]], bytes]:
    return build_pdf


@pytest.fixture()
def docx_factory() -> Callable[..., bytes]:
    return build_docx


@pytest.fixture()
def stale_scheduler(clock: FakeClock) -> ManualScheduler:
    return ManualScheduler(clock, honor_cancel=False)
