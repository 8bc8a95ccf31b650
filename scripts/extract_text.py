#!/usr/bin/env python3
"""Run a local document through the extraction pipeline and print the result."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from policy_decoder.config import get_settings
from policy_decoder.ingest import ExtractionError, IngestPipeline
from policy_decoder.ingest.spool import copy_to_spool
from policy_decoder.logging_config import configure_logging


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", type=Path, help="Document to extract (PDF, DOCX or TXT).")
    parser.add_argument(
        "--text",
        action="store_true",
        help="Print the extracted text after the summary line.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv if argv is not None else sys.argv[1:])
    settings = get_settings()
    configure_logging(settings.log_level)

    # The pipeline deletes what it is given; work on a spooled copy.
    raw = copy_to_spool(args.path, max_bytes=settings.max_upload_bytes, directory=settings.upload_tmp_dir)
    try:
        extracted = IngestPipeline(settings.limits).extract(raw)
    except ExtractionError as error:
        print(json.dumps({"status": "error", "kind": error.kind, "reason": str(error)}))
        return 1

    summary = {
        "status": "ok",
        "units": extracted.unit_count,
        "characters": len(extracted.text),
        "truncated": extracted.truncated,
        "skipped_fragments": extracted.skipped_fragments,
    }
    print(json.dumps(summary))
    if args.text:
        print(extracted.text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
