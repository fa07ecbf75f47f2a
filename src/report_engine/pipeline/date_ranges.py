"""
Reporting window resolution.

Selectors are resolved in UTC relative to the run instant. Calendar periods
run from 00:00 on their first day to 23:59:59.999999 on their last day.
"""

from datetime import UTC, datetime, timedelta

from ..errors import ConfigError
from ..models import DateRange, DateRangeSelector

_END_OF_DAY = timedelta(days=1) - timedelta(microseconds=1)

_ROLLING_DAYS = {
    DateRangeSelector.LAST_7_DAYS: 7,
    DateRangeSelector.LAST_30_DAYS: 30,
}


def _month_start(year: int, month: int) -> datetime:
    return datetime(year, month, 1, tzinfo=UTC)


def _shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def _period(start: datetime, next_start: datetime) -> DateRange:
    return DateRange(start, next_start - timedelta(microseconds=1))


def resolve_date_range(selector: DateRangeSelector | str, now: datetime) -> DateRange:
    """
    Resolve a relative selector against a run instant

    Args:
        selector: Date range selector
        now: Timezone-aware run instant

    Returns:
        UTC DateRange

    Raises:
        ConfigError: For unknown selectors or a naive `now`
    """
    try:
        selector = DateRangeSelector(selector)
    except ValueError as e:
        raise ConfigError(f"Unknown date range selector {selector!r}") from e

    if now.tzinfo is None:
        raise ConfigError("Run instant must be timezone-aware")

    now = now.astimezone(UTC)

    if selector == DateRangeSelector.LAST_MONTH:
        year, month = _shift_month(now.year, now.month, -1)
        return _period(_month_start(year, month), _month_start(now.year, now.month))

    if selector == DateRangeSelector.LAST_QUARTER:
        quarter_month = 3 * ((now.month - 1) // 3) + 1
        year, month = _shift_month(now.year, quarter_month, -3)
        return _period(_month_start(year, month), _month_start(now.year, quarter_month))

    if selector == DateRangeSelector.LAST_YEAR:
        return _period(_month_start(now.year - 1, 1), _month_start(now.year, 1))

    if selector == DateRangeSelector.YTD:
        return DateRange(_month_start(now.year, 1), now)

    return DateRange(now - timedelta(days=_ROLLING_DAYS[selector]), now)
