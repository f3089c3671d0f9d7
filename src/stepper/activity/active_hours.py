"""
Active-hours policy: time-of-day windows during which inactivity reminders
are allowed.

Membership works on minutes since midnight with inclusive boundaries.
A window whose start is after its end wraps past midnight, e.g. 22:00-06:00
contains 23:30 and 05:00 but not 12:00.

With no windows configured, no moment is active, so no inactivity
reminders go out until the user sets at least one.
"""
from datetime import datetime, time
from typing import Iterable, Union

from stepper.models.state import TimeRange


def minutes_since_midnight(moment: Union[datetime, time]) -> int:
    """Minutes since midnight for a datetime or time (seconds are dropped)."""
    return moment.hour * 60 + moment.minute


def interval_contains(interval: TimeRange, instant: Union[datetime, time]) -> bool:
    """True if the instant's time of day falls inside the interval."""
    t = minutes_since_midnight(instant)
    start = minutes_since_midnight(interval.start)
    end = minutes_since_midnight(interval.end)

    if start <= end:
        return start <= t <= end
    # Spans midnight
    return t >= start or t <= end


def is_within_active_hours(
    instant: Union[datetime, time], intervals: Iterable[TimeRange]
) -> bool:
    """True if any configured interval contains the instant. Empty → False."""
    return any(interval_contains(interval, instant) for interval in intervals)
