"""
Next-run computation for human recurrence rules.

Date arithmetic happens on the local calendar date of the reference instant;
the configured time of day and timezone are applied last, and the result is
normalised back to UTC. DST gaps and overlaps therefore only move the final
instant, never the selected date.
"""

import calendar
import re
from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..errors import ConfigError
from ..models import Frequency, ScheduleConfig

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")

_MONTH_STEP = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
}


def parse_time_of_day(value: str) -> time:
    """
    Parse a 24h "HH:MM" string

    Raises:
        ConfigError: If the value is not a well-formed time of day
    """
    match = _TIME_PATTERN.match(value or "")
    if not match:
        raise ConfigError(f"Invalid time of day {value!r}, expected HH:MM (24h)")
    return time(int(match.group(1)), int(match.group(2)))


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigError(f"Unknown timezone {name!r}") from e


def validate_schedule(frequency: Frequency | str, schedule: ScheduleConfig) -> Frequency:
    """
    Check a schedule against its frequency

    Args:
        frequency: Recurrence frequency
        schedule: Schedule to validate

    Returns:
        The frequency as an enum member

    Raises:
        ConfigError: For missing required fields, out-of-range values,
            malformed time or unknown timezone
    """
    try:
        frequency = Frequency(frequency)
    except ValueError as e:
        raise ConfigError(f"Unknown frequency {frequency!r}") from e

    parse_time_of_day(schedule.time)
    _zone(schedule.timezone)

    if frequency == Frequency.WEEKLY:
        if schedule.day_of_week is None:
            raise ConfigError("day_of_week is required for weekly schedules")
        if not isinstance(schedule.day_of_week, int) or not 0 <= schedule.day_of_week <= 6:
            raise ConfigError(f"day_of_week must be 0-6, got {schedule.day_of_week!r}")

    if frequency in _MONTH_STEP:
        if schedule.day_of_month is None:
            raise ConfigError(f"day_of_month is required for {frequency.value} schedules")
        if not isinstance(schedule.day_of_month, int) or not 1 <= schedule.day_of_month <= 31:
            raise ConfigError(f"day_of_month must be 1-31, got {schedule.day_of_month!r}")

    return frequency


def _add_months(year: int, month: int, months: int, day: int) -> date:
    """Shift (year, month) by `months` and clamp `day` to the target month's length."""
    index = year * 12 + (month - 1) + months
    target_year, target_month = divmod(index, 12)
    target_month += 1
    last_day = calendar.monthrange(target_year, target_month)[1]
    return date(target_year, target_month, min(day, last_day))


def _at_local_time(day: date, at: time, tz: ZoneInfo) -> datetime:
    return datetime.combine(day, at, tzinfo=tz).astimezone(UTC)


def next_run(
    frequency: Frequency | str,
    schedule: ScheduleConfig,
    from_: datetime,
) -> datetime:
    """
    Compute the next execution instant strictly after `from_`

    Args:
        frequency: Recurrence frequency
        schedule: Day, time of day and timezone of the recurrence
        from_: Timezone-aware reference instant

    Returns:
        Aware UTC datetime greater than `from_`

    Raises:
        ConfigError: If the schedule is invalid or `from_` is naive
    """
    frequency = validate_schedule(frequency, schedule)

    if from_.tzinfo is None:
        raise ConfigError("Reference instant must be timezone-aware")

    tz = _zone(schedule.timezone)
    at = parse_time_of_day(schedule.time)

    run_date = _next_date(frequency, schedule, from_.astimezone(tz).date())
    candidate = _at_local_time(run_date, at, tz)

    # Advance again if the local time resolved at or before the reference
    # instant (backwards offset change across local midnight)
    while candidate <= from_:
        run_date = _next_date(frequency, schedule, run_date)
        candidate = _at_local_time(run_date, at, tz)

    return candidate


def _next_date(frequency: Frequency, schedule: ScheduleConfig, local_date: date) -> date:
    """Next calendar date of the recurrence strictly after `local_date`."""
    if frequency == Frequency.DAILY:
        return local_date + timedelta(days=1)

    if frequency == Frequency.WEEKLY:
        # Sunday-based weekday to match day_of_week (0 = Sunday)
        current = (local_date.weekday() + 1) % 7
        step = (schedule.day_of_week - current) % 7 or 7
        return local_date + timedelta(days=step)

    # Clamp from the configured day each time so short months never drift
    return _add_months(
        local_date.year, local_date.month, _MONTH_STEP[frequency], schedule.day_of_month
    )


def upcoming_runs(
    frequency: Frequency | str,
    schedule: ScheduleConfig,
    from_: datetime,
    count: int = 5,
) -> list[datetime]:
    """
    Preview the next `count` execution instants

    Each instant is computed from the previous one, exactly as the scheduler
    would advance a job after every run.
    """
    if count < 0:
        raise ConfigError("count cannot be negative")

    runs = []
    current = from_
    for _ in range(count):
        current = next_run(frequency, schedule, current)
        runs.append(current)
    return runs
