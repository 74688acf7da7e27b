"""Logging configuration for badge-service.

Two output shapes, picked by LOG_JSON:

  _ContainerFormatter: one readable line per record for a terminal,
    with badge context appended as ``key=value`` pairs:

      2025-06-15T09:30:12.345+0000 INFO     badge_service.services.generator  badge issued  badge_type=speaker

  _JsonFormatter: JSON Lines for log aggregation, badge context as
    top-level keys:

      {"level": "INFO", "message": "badge issued", "badge_type": "speaker"}

Callers attach context with the standard ``extra=`` argument:

    logger.info("badge issued", extra={"badge_id": badge_id})

Only the names in BADGE_CONTEXT_FIELDS are picked up.  Key material is
never logged: log the verification method URI, which names the public
key, instead of key bytes.  A context value that looks like a raw
64-hex-character key is masked anyway.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from typing import TextIO

BADGE_CONTEXT_FIELDS = (
    "badge_id",
    "badge_type",
    "credential_id",
    "verification_method",
    "signature_format",
    "error_count",
)

_RAW_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")
_REDACTED = "<redacted>"
_DATEFMT = "%Y-%m-%dT%H:%M:%S%z"


def _badge_context(record: logging.LogRecord) -> dict[str, object]:
    context: dict[str, object] = {}
    for key in BADGE_CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is None:
            continue
        if isinstance(value, str) and _RAW_KEY_RE.match(value):
            value = _REDACTED
        context[key] = value
    return context


def _with_millis(formatter: logging.Formatter, record: logging.LogRecord) -> str:
    # strftime has no milliseconds; splice .NNN in front of the +0000 offset.
    base = logging.Formatter.formatTime(formatter, record, _DATEFMT)
    return f"{base[:-5]}.{int(record.msecs):03d}{base[-5:]}"


class _ContainerFormatter(logging.Formatter):
    """Single-line formatter for terminals and container stdout.

    WARNING and above get ``[filename:lineno]`` appended; tracebacks
    follow on the next lines when exc_info is set.
    """

    def __init__(self) -> None:
        super().__init__(datefmt=_DATEFMT)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _with_millis(self, record)

    def format(self, record: logging.LogRecord) -> str:
        line = (
            f"{self.formatTime(record)} {record.levelname:<8} {record.name}  "
            f"{record.getMessage()}"
        )

        context = _badge_context(record)
        if context:
            line += "  " + " ".join(f"{k}={v}" for k, v in context.items())
        if record.levelno >= logging.WARNING:
            line += f"  [{record.filename}:{record.lineno}]"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JsonFormatter(logging.Formatter):
    """One JSON object per line; badge context as top-level keys."""

    def __init__(self) -> None:
        super().__init__(datefmt=_DATEFMT)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _with_millis(self, record)

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(_badge_context(record))

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def setup_logging(
    level_name: str, *, json_format: bool = False, stream: TextIO | None = None
) -> None:
    """Configure the root logger.

    Args:
        level_name: debug/info/warning/error; unknown names fall back to info.
        json_format: JSON Lines instead of readable lines (LOG_JSON).
        stream: where to write; stdout by default.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in ("pydantic", "prometheus_client"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
