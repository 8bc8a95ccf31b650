"""Spooling of upload streams into short-lived temporary files."""
from __future__ import annotations

import logging
import re
import tempfile
from pathlib import Path
from typing import BinaryIO, Final, Optional

from .models import RawDocument

LOGGER = logging.getLogger(__name__)

_FILENAME_SAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]+")
_COPY_CHUNK_SIZE: Final[int] = 64 * 1024


def sanitize_filename(filename: Optional[str]) -> str:
    """Return a filesystem-safe filename preserving the extension when possible."""
    if not filename:
        filename = "upload"
    # Remove any path components and replace disallowed characters.
    sanitized = Path(filename).name
    sanitized = _FILENAME_SAFE_CHARS_RE.sub("_", sanitized)
    sanitized = sanitized.strip("._") or "upload"
    return sanitized[:255]


def spool_upload(
    stream: BinaryIO,
    *,
    filename: Optional[str] = None,
    media_type: Optional[str] = None,
    max_bytes: int,
    directory: Optional[Path] = None,
) -> RawDocument:
    """Copy ``stream`` into a temporary file and wrap it as a :class:`RawDocument`.

    Copying stops after ``max_bytes + 1`` bytes; the declared size then exceeds
    the limit and the pipeline rejects the document without parsing it. The
    caller hands the document to the pipeline, which removes the file.
    """

    safe_name = sanitize_filename(filename)
    suffix = Path(safe_name).suffix
    if directory is not None:
        directory.mkdir(parents=True, exist_ok=True)

    handle = tempfile.NamedTemporaryFile(
        prefix="upload-", suffix=suffix, dir=directory, delete=False
    )
    path = Path(handle.name)
    written = 0
    try:
        with handle:
            while written <= max_bytes:
                chunk = stream.read(min(_COPY_CHUNK_SIZE, max_bytes + 1 - written))
                if not chunk:
                    break
                handle.write(chunk)
                written += len(chunk)
    except BaseException:
        path.unlink(missing_ok=True)
        raise

    if written > max_bytes:
        LOGGER.info("Upload %s exceeded %s bytes; stopped spooling", safe_name, max_bytes)
    return RawDocument.from_path(path, media_type=media_type, filename=safe_name, size=written)


def copy_to_spool(source: Path, *, max_bytes: int, directory: Optional[Path] = None) -> RawDocument:
    """Spool an existing file, leaving ``source`` untouched."""

    with source.open("rb") as stream:
        return spool_upload(stream, filename=source.name, max_bytes=max_bytes, directory=directory)
