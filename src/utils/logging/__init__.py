"""
Structured logging configuration for the report engine

Provides JSON-formatted logging with correlation ids (job, run and
reconciliation record) and contextual information.

Usage:
    from utils.logging import setup_logging, get_logger

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", log_file="/var/log/report-engine/app.log")

    # Get logger for your module
    logger = get_logger(__name__)

    # Log with context
    logger.info("Run completed", extra={"job_id": "job-1", "run_id": "run-2"})
"""

from .config import get_logger, setup_logging, shutdown_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "shutdown_logging",
    "get_logger",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
