"""
Schedule calculation module

Turns a human recurrence rule (frequency, day, time of day, timezone) into
the next execution instant.
"""

from .calculator import next_run, parse_time_of_day, upcoming_runs, validate_schedule

__all__ = [
    'next_run',
    'parse_time_of_day',
    'upcoming_runs',
    'validate_schedule',
]
