"""
Structured logging for tixflow.

Records carry a trace_id: the asset (ticket, class, escrow or address) the
current transition targets, so every line of one buy or check-in can be
pulled out of a mixed log.

Environment Variables:
    TIX_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR - default: INFO
    TIX_LOG_FORMAT: json, text - default: json

Usage:
    setup_logging()
    log = get_logger(__name__, trace_id=ticket.id)
    log.info("submitting check_in")
"""

import logging
import os
import sys
from typing import IO, Optional

from pythonjsonlogger.json import JsonFormatter

NO_TRACE = "N/A"

JSON_FIELDS = "%(asctime)s %(name)s %(levelname)s %(message)s %(trace_id)s"
JSON_RENAMES = {"asctime": "timestamp", "name": "logger", "levelname": "level"}
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s [trace_id=%(trace_id)s]"


class TraceIDFilter(logging.Filter):
    """Give records logged without an adapter a placeholder trace_id."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = NO_TRACE  # type: ignore[attr-defined]
        return True


def _formatter(fmt: str) -> logging.Formatter:
    if fmt == "text":
        return logging.Formatter(TEXT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    return JsonFormatter(JSON_FIELDS, rename_fields=JSON_RENAMES)


def setup_logging(
    level: Optional[str] = None, fmt: Optional[str] = None, stream: Optional[IO[str]] = None
) -> None:
    """
    Replace the root handlers with one stderr (or stream) handler.

    level and fmt override TIX_LOG_LEVEL / TIX_LOG_FORMAT. Unknown levels
    fall back to INFO, unknown formats to json.
    """
    name = (level or os.getenv("TIX_LOG_LEVEL", "INFO")).upper()
    resolved = logging.getLevelName(name)
    if not isinstance(resolved, int):
        resolved = logging.INFO

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(resolved)
    # filter on the handler so propagated records from child loggers pass through it
    handler.addFilter(TraceIDFilter())
    handler.setFormatter(_formatter((fmt or os.getenv("TIX_LOG_FORMAT", "json")).lower()))

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(resolved)


def get_logger(name: str, trace_id: Optional[str] = None) -> logging.LoggerAdapter:
    """Logger whose records all carry trace_id."""
    return logging.LoggerAdapter(logging.getLogger(name), {"trace_id": trace_id or NO_TRACE})
