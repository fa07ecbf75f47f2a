"""
Root logger setup for the report engine.

setup_logging replaces whatever handlers the root logger has, so the CLI can
call it after parsing --log-level and tests can call it repeatedly.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from .formatters import ConsoleFormatter, JSONFormatter

DEFAULT_APP_NAME = "report-engine"

# Held at WARNING or above whatever the application level
NOISY_LOGGERS = ("apscheduler", "urllib3", "opentelemetry")

PLAIN_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def _console_handler(json_format: bool, app_name: str) -> logging.Handler:
    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JSONFormatter(app_name=app_name))
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=sys.stderr.isatty()))
    return handler


def _file_handler(
    log_file: str,
    json_format: bool,
    app_name: str,
    max_bytes: int,
    backup_count: int,
) -> logging.Handler:
    path = Path(log_file)
    path.parent.mkdir(parents=True, exist_ok=True)

    handler = RotatingFileHandler(
        path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    if json_format:
        handler.setFormatter(JSONFormatter(app_name=app_name))
    else:
        handler.setFormatter(logging.Formatter(PLAIN_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    return handler


def _detach_handlers(root: logging.Logger) -> None:
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = DEFAULT_APP_NAME,
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Configure the root logger

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Rotating log file; None disables file logging
        console_output: Log to stderr
        json_format: One JSON object per line instead of plain text
        app_name: "app" value in JSON records
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files kept
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    root = logging.getLogger()
    _detach_handlers(root)
    root.setLevel(numeric_level)

    handlers = []
    if console_output:
        handlers.append(_console_handler(json_format, app_name))
    if log_file:
        handlers.append(_file_handler(log_file, json_format, app_name, max_bytes, backup_count))

    for handler in handlers:
        handler.setLevel(numeric_level)
        root.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(logging.WARNING, numeric_level))

    logging.getLogger(__name__).debug(
        f"Logging at {logging.getLevelName(numeric_level)} "
        f"to {', '.join(type(h).__name__ for h in handlers) or 'nowhere'}"
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


def shutdown_logging() -> None:
    """Flush and close every root handler before the process exits."""
    _detach_handlers(logging.getLogger())
    logging.shutdown()
