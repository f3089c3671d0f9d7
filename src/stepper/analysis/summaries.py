"""
Per-day activity summaries: 24 hourly step buckets joined with the
reminder counts from NotificationHistory.

Summaries are built on demand and never persisted. DayActivitySummary is
the input to every aggregator function.
"""
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from stepper.notifications.history import NotificationHistory

# 6 AM up to (not including) 11 PM
WAKING_HOURS = range(6, 23)


def format_hour(hour: int) -> str:
    """12-hour clock label: 0 → "12 AM", 9 → "9 AM", 13 → "1 PM"."""
    if hour == 0:
        return "12 AM"
    if hour < 12:
        return f"{hour} AM"
    if hour == 12:
        return "12 PM"
    return f"{hour - 12} PM"


@dataclass
class HourlyActivity:
    hour: int  # 0-23
    steps: int = 0
    notifications: int = 0

    @property
    def label(self) -> str:
        return format_hour(self.hour)


@dataclass
class DayActivitySummary:
    day: date
    hourly: List[HourlyActivity] = field(default_factory=list)
    target_steps: int = 10000

    @property
    def total_steps(self) -> int:
        return sum(h.steps for h in self.hourly)

    @property
    def total_notifications(self) -> int:
        return sum(h.notifications for h in self.hourly)

    @property
    def goal_met(self) -> bool:
        return self.total_steps >= self.target_steps

    def steps_at(self, hour: int) -> int:
        return next((h.steps for h in self.hourly if h.hour == hour), 0)

    def notifications_at(self, hour: int) -> int:
        return next((h.notifications for h in self.hourly if h.hour == hour), 0)

    @property
    def most_active_hour(self) -> Optional[int]:
        """Waking hour with the most steps (earliest on ties). None if no steps."""
        waking = [h for h in self.hourly if h.hour in WAKING_HOURS and h.steps > 0]
        if not waking:
            return None
        return max(waking, key=lambda h: (h.steps, -h.hour)).hour

    @property
    def most_inactive_hour(self) -> Optional[int]:
        """Hour with the most reminders (earliest on ties). None if no reminders."""
        flagged = [h for h in self.hourly if h.notifications > 0]
        if not flagged:
            return None
        return max(flagged, key=lambda h: (h.notifications, -h.hour)).hour


def build_day_summary(
    day: date,
    hourly_steps: Sequence[int],
    history: Optional[NotificationHistory] = None,
    target_steps: int = 10000,
) -> DayActivitySummary:
    """
    Join 24 hourly step counts with the day's reminder counts.

    Missing hours count as zero steps; extra entries beyond 24 are ignored.
    """
    steps = list(hourly_steps[:24]) + [0] * max(0, 24 - len(hourly_steps))
    hourly = [
        HourlyActivity(
            hour=hour,
            steps=int(steps[hour] or 0),
            notifications=history.count_for_hour(day, hour) if history is not None else 0,
        )
        for hour in range(24)
    ]
    return DayActivitySummary(day=day, hourly=hourly, target_steps=target_steps)
