"""JSON logging for the service.

Records go to stderr only. Structured events produced by
:func:`policy_decoder.telemetry.log_event` arrive as dict messages and are
merged into the top level of each JSON line.
"""

from __future__ import annotations

import json
import logging
import logging.config
from datetime import datetime, timezone
from typing import Any

# Attributes every LogRecord carries; anything else came in through ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))) | {
    "message",
    "asctime",
}
_MAX_VALUE_CHARS = 2000


def _clip(value: Any) -> Any:
    if isinstance(value, str) and len(value) > _MAX_VALUE_CHARS:
        return f"{value[:_MAX_VALUE_CHARS]}...[clipped {len(value) - _MAX_VALUE_CHARS} chars]"
    return value


class MinimalJSONFormatter(logging.Formatter):
    """Serialize a record as one compact JSON object per line.

    Long string values are clipped so that a stray document excerpt cannot
    flood the log stream.
    """

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401 - inherited
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: dict[str, Any] = {
            "ts": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "module": record.name,
        }

        if isinstance(record.msg, dict):
            entry.update(record.msg)
        else:
            entry["message"] = record.getMessage()

        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )

        # log_event already renders the traceback under "exc".
        if record.exc_info and "exc" not in entry:
            entry["exc"] = self.formatException(record.exc_info)

        return json.dumps(
            {key: _clip(value) for key, value in entry.items()},
            ensure_ascii=False,
            default=str,
        )


def configure_logging(level: str = "INFO") -> None:
    """Send every record to stderr as JSON at ``level``."""

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"json": {"()": MinimalJSONFormatter}},
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "json",
                },
            },
            "root": {"level": level.upper(), "handlers": ["stderr"]},
            "loggers": {
                # pypdf reports recoverable structure problems as warnings.
                "pypdf": {"level": "ERROR"},
            },
        }
    )
