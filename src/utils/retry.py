"""
Exponential backoff for operations that lose races.

Compare-and-swap writes against the record store raise
ConcurrentUpdateError when another writer got there first; re-reading and
trying again shortly after almost always succeeds. Competing writers are
spread apart with jitter.

Usage:
    from utils.retry import retry_with_backoff

    @retry_with_backoff(max_retries=5, base_delay=0.05,
                        retryable_exceptions=(ConcurrentUpdateError,))
    def advance_job(store, job_id):
        ...
"""

import logging
import random
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

logger = logging.getLogger(__name__)

# Fraction of the delay that jitter may add or remove
JITTER_FRACTION = 0.25

RetryCallback = Callable[[int, Exception, float], None]


def backoff_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    exponential_base: float = 2.0,
    jitter: bool = True,
    min_delay: float = 0.0,
) -> float:
    """Seconds to wait before retry number `attempt` (0-based)."""
    delay = min(max_delay, base_delay * exponential_base ** attempt)
    if jitter:
        delay *= 1 + random.uniform(-JITTER_FRACTION, JITTER_FRACTION)
    return max(min_delay, delay)


def _notify(on_retry: RetryCallback, attempt: int, error: Exception, delay: float) -> None:
    # Callback errors are logged, never raised
    try:
        on_retry(attempt, error, delay)
    except Exception as callback_error:
        logger.error(f"Retry callback failed: {callback_error}")


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    retryable_exceptions: tuple[type[Exception], ...] | None = None,
    on_retry: RetryCallback | None = None,
    sleep: Callable[[float], None] = time.sleep,
):
    """
    Retry the decorated function with exponential backoff

    Args:
        max_retries: Attempts after the first one
        base_delay: Delay before the first retry, in seconds
        max_delay: Upper bound on any single delay
        exponential_base: Growth factor between delays
        jitter: Randomize each delay by up to 25%
        retryable_exceptions: Exception types worth retrying (default: any)
        on_retry: Called as on_retry(attempt, exception, delay) before sleeping
        sleep: Wait function, replaceable in tests

    Returns:
        Decorator
    """
    retryable = retryable_exceptions or (Exception,)

    def decorator(func: Callable) -> Callable:
        name = getattr(func, "__qualname__", repr(func))

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except retryable as e:
                    if attempt >= max_retries:
                        logger.error(f"{name} failed after {attempt + 1} attempts: {e}")
                        raise

                    delay = backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
                    attempt += 1
                    logger.warning(
                        f"{name} attempt {attempt}/{max_retries + 1} failed "
                        f"({type(e).__name__}: {e}); retrying in {delay:.2f}s"
                    )
                    if on_retry:
                        _notify(on_retry, attempt, e, delay)
                    sleep(delay)

        return wrapper
    return decorator
