"""
Context-carrying logger.

Jobs, runs and reconciliation records each log through a ContextLogger
bound to their ids, so every line they emit can be correlated.
"""

import logging
from typing import Any


class ContextLogger(logging.LoggerAdapter):
    """
    Logger adapter that merges bound context into every record

    Keyword arguments that are not logging options become per-call context.

    Usage:
        log = ContextLogger(__name__, job_id="job-123")
        log.info("Run started", run_id="run-456")
    """

    _LOG_OPTIONS = frozenset({"exc_info", "stack_info", "stacklevel", "extra"})

    def __init__(self, name: str, **context: Any):
        super().__init__(logging.getLogger(name), context)

    @property
    def context(self) -> dict[str, Any]:
        return self.extra

    def log(self, level: int, msg: object, *args: Any, **kwargs: Any) -> None:
        options = {key: kwargs.pop(key) for key in list(kwargs) if key in self._LOG_OPTIONS}
        options["extra"] = {**options.get("extra", {}), **kwargs}
        super().log(level, msg, *args, **options)

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs

    def debug(self, msg: object, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: object, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: object, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: object, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: object, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("exc_info", True)
        self.log(logging.ERROR, msg, *args, **kwargs)

    def bind(self, **context: Any) -> "ContextLogger":
        """New logger over the same underlying logger with extra bound context."""
        return ContextLogger(self.logger.name, **{**self.extra, **context})

    def get_context(self) -> dict[str, Any]:
        return dict(self.extra)
