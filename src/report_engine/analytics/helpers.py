"""
Numeric helpers shared by the report aggregations.

Every ratio helper returns exactly 0 when the denominator is zero or the
result is not finite, so payloads only ever carry finite numbers.
"""

import math
from collections.abc import Iterable
from datetime import datetime

# Average month length used when expressing durations in months
DAYS_PER_MONTH = 30.0


def safe_divide(numerator: float, denominator: float) -> float:
    """Divide, returning 0 for a zero denominator or a non-finite result."""
    if denominator == 0:
        return 0.0
    result = numerator / denominator
    return result if math.isfinite(result) else 0.0


def percentage(part: float, whole: float) -> float:
    """part / whole x 100, or 0 when whole is 0."""
    return safe_divide(part, whole) * 100


def growth_rate(current: float, previous: float) -> float:
    """(current - previous) / previous x 100, or 0 when previous is 0."""
    return percentage(current - previous, previous)


def mean(values: Iterable[float]) -> float:
    values = list(values)
    return safe_divide(sum(values), len(values))


def round_money(value: float) -> float:
    """Round a money amount to cents; non-finite values become 0."""
    if not math.isfinite(value):
        return 0.0
    # Adding 0.0 folds -0.0 into 0.0
    return round(value, 2) + 0.0


def round_rate(value: float) -> float:
    return round(value, 2) + 0.0 if math.isfinite(value) else 0.0


def month_key(instant: datetime) -> str:
    """Calendar month key "YYYY-MM" of a UTC instant."""
    return f"{instant.year:04d}-{instant.month:02d}"


def month_keys(start: datetime, end: datetime) -> list[str]:
    """Every month key from start to end inclusive, ascending."""
    keys = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month):
        keys.append(f"{year:04d}-{month:02d}")
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return keys


def days_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 86400


def months_between(start: datetime, end: datetime) -> float:
    return days_between(start, end) / DAYS_PER_MONTH
