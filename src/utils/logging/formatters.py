"""
Log formatters for the report engine.

JSONFormatter writes one object per line for log shipping, with the ids of
the job, run or reconciliation being handled lifted to the top level.
ConsoleFormatter writes a single readable line for operators at a terminal.
"""

import json
import logging
import socket
import traceback
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came from `extra`
_RECORD_FIELDS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "asctime",
})

# Context keys lifted to the top level of JSON records for log search
CORRELATION_FIELDS = ("job_id", "run_id", "record_id", "report_type", "period")

# ANSI colour per level number
_LEVEL_COLORS = {
    logging.DEBUG: 36,
    logging.INFO: 32,
    logging.WARNING: 33,
    logging.ERROR: 31,
    logging.CRITICAL: 35,
}


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Context attached to a record through `extra=`."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RECORD_FIELDS and not key.startswith("_")
    }


def _describe_exception(exc_info) -> dict[str, Any]:
    error_type, error, tb = exc_info
    return {
        "type": error_type.__name__,
        "message": str(error),
        "traceback": "".join(traceback.format_exception(error_type, error, tb)),
    }


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record

    Correlation ids (job, run, reconciliation record, report type, period)
    sit beside the message; any other extra context is nested under
    "context" so it never collides with the standard keys.
    """

    def __init__(self, app_name: str = "report-engine", include_hostname: bool = True):
        """
        Args:
            app_name: Value of the "app" key
            include_hostname: Add the machine hostname to every record
        """
        super().__init__()
        self.app_name = app_name
        self.hostname = socket.gethostname() if include_hostname else None

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "app": self.app_name,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "origin": f"{record.module}:{record.funcName}:{record.lineno}",
            "thread": record.threadName,
        }
        if self.hostname:
            entry["hostname"] = self.hostname

        context = extra_fields(record)
        entry.update({key: context.pop(key) for key in CORRELATION_FIELDS if key in context})
        if context:
            entry["context"] = context

        if record.exc_info:
            entry["exception"] = _describe_exception(record.exc_info)

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line terminal output; extra context trails as [key=value, ...]."""

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        self.use_colors = use_colors

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        color = _LEVEL_COLORS.get(record.levelno)
        if self.use_colors and color:
            tag = f"[{record.levelname}]"
            line = line.replace(tag, f"\033[{color}m{tag}\033[0m", 1)
        return line

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = extra_fields(record)
        if not context:
            return line
        return line + " [" + ", ".join(f"{k}={v}" for k, v in context.items()) + "]"
