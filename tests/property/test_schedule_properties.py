"""
Property-based tests for next-run computation.

Tests properties related to:
- Strict monotonicity of next_run
- Month-end clamping without drift
- Weekly spacing
- Timezone handling
"""

from datetime import UTC, datetime, timedelta
from zoneinfo import ZoneInfo

from hypothesis import given, settings
from hypothesis import strategies as st

from report_engine.models import Frequency, ScheduleConfig
from report_engine.schedule import next_run, upcoming_runs

TIMEZONES = ["UTC", "Europe/London", "America/New_York", "Australia/Sydney", "Asia/Kolkata"]

instants = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2090, 12, 31),
    timezones=st.just(UTC),
)

times_of_day = st.builds(
    lambda h, m: f"{h:02d}:{m:02d}",
    st.integers(min_value=0, max_value=23),
    st.integers(min_value=0, max_value=59),
)


@st.composite
def schedules(draw) -> ScheduleConfig:
    frequency = draw(st.sampled_from(list(Frequency)))
    return ScheduleConfig(
        frequency=frequency,
        time=draw(times_of_day),
        timezone=draw(st.sampled_from(TIMEZONES)),
        day_of_week=draw(st.integers(min_value=0, max_value=6)),
        day_of_month=draw(st.integers(min_value=1, max_value=31)),
    )


# Property: next_run is always strictly after the reference instant
@given(schedule=schedules(), from_=instants)
@settings(max_examples=300)
def test_next_run_strictly_after(schedule: ScheduleConfig, from_: datetime):
    """next_run should be an aware UTC instant greater than from_."""
    result = next_run(schedule.frequency, schedule, from_)

    assert result > from_
    assert result.utcoffset() == timedelta(0)


# Property: a daily schedule never skips a local day
@given(time=times_of_day, from_=instants, tz=st.sampled_from(TIMEZONES))
def test_daily_runs_on_following_local_day(time: str, from_: datetime, tz: str):
    """Daily runs should land on the local day after the reference, or the one after a DST fold."""
    schedule = ScheduleConfig(Frequency.DAILY, time, timezone=tz)
    zone = ZoneInfo(tz)

    result = next_run(Frequency.DAILY, schedule, from_)
    gap = result.astimezone(zone).date() - from_.astimezone(zone).date()

    assert gap in (timedelta(days=1), timedelta(days=2))


# Property: day 31 clamps to each month's last day and recovers afterwards
@given(year=st.integers(min_value=2000, max_value=2080))
def test_month_end_clamping_has_no_drift(year: int):
    """A day-31 monthly schedule should hit the last day of every month."""
    schedule = ScheduleConfig(Frequency.MONTHLY, "09:00", day_of_month=31)
    start = datetime(year, 1, 1, tzinfo=UTC)

    runs = upcoming_runs(Frequency.MONTHLY, schedule, start, count=12)

    for run in runs:
        following = run + timedelta(days=1)
        assert following.month != run.month
    assert len({(r.year, r.month) for r in runs}) == 12


# Property: weekly runs in UTC are exactly seven days apart
@given(day=st.integers(min_value=0, max_value=6), time=times_of_day, from_=instants)
def test_weekly_spacing(day: int, time: str, from_: datetime):
    """Consecutive weekly runs should be one week apart and on the configured weekday."""
    schedule = ScheduleConfig(Frequency.WEEKLY, time, day_of_week=day)

    first, second = upcoming_runs(Frequency.WEEKLY, schedule, from_, count=2)

    assert second - first == timedelta(days=7)
    assert (first.weekday() + 1) % 7 == day


# Property: in UTC the run lands exactly on the configured wall-clock time
@given(schedule=schedules(), from_=instants)
def test_utc_time_of_day(schedule: ScheduleConfig, from_: datetime):
    """Without offset changes the run should carry the configured hour and minute."""
    schedule.timezone = "UTC"
    hour, minute = map(int, schedule.time.split(":"))

    result = next_run(schedule.frequency, schedule, from_)

    assert (result.hour, result.minute, result.second) == (hour, minute, 0)
