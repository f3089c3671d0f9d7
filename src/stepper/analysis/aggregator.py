"""
Activity insights across a set of days.

Every function is pure: it takes List[DayActivitySummary] and returns a
number or an hour. summarize() bundles them into ActivityInsights for display.

Waking hours are 6 AM to 11 PM. Ties on "most" anything resolve to the
earliest hour.

Consistency score: an hour counts as consistent when the user took at least
MIN_ACTIVE_STEPS_PER_HOUR steps in it on at least 70% of the days analysed.
The score is the percentage of waking hours that are consistent.
"""
from dataclasses import dataclass
from typing import Dict, List, Optional

from stepper.analysis.summaries import WAKING_HOURS, DayActivitySummary, format_hour

MIN_ACTIVE_STEPS_PER_HOUR = 100
CONSISTENCY_DAY_FRACTION = 0.7
WINDOW_HOURS = 2


@dataclass
class HourWindow:
    """A run of whole hours, start_hour..end_hour inclusive."""

    start_hour: int
    end_hour: int
    average: float

    @property
    def label(self) -> str:
        return f"{format_hour(self.start_hour)} - {format_hour((self.end_hour + 1) % 24)}"


@dataclass
class ActivityInsights:
    days_analyzed: int
    peak_activity_hour: Optional[int]
    most_notification_hour: Optional[int]
    most_active_window: Optional[HourWindow]
    most_inactive_window: Optional[HourWindow]
    consistency_score: int  # 0-100
    average_daily_steps: int
    total_notifications: int
    goals_achieved: int
    goal_achievement_rate: float  # 0.0-1.0
    activity_notification_correlation: float  # 0.0-1.0

    @property
    def consistency_level(self) -> str:
        if self.consistency_score >= 80:
            return "Excellent"
        if self.consistency_score >= 60:
            return "Good"
        if self.consistency_score >= 40:
            return "Fair"
        if self.consistency_score >= 20:
            return "Needs Work"
        return "Poor"

    @property
    def goal_success_percent(self) -> int:
        return int(self.goal_achievement_rate * 100)

    @property
    def peak_activity_time(self) -> Optional[str]:
        if self.peak_activity_hour is None:
            return None
        return format_hour(self.peak_activity_hour)


def _first_max(totals: Dict[int, float]) -> Optional[int]:
    """Key with the highest positive value; earliest hour on ties."""
    if not totals or max(totals.values()) <= 0:
        return None
    return max(sorted(totals), key=lambda hour: (totals[hour], -hour))


def peak_activity_hour(days: List[DayActivitySummary]) -> Optional[int]:
    """Waking hour with the highest total steps across all days."""
    totals = {hour: sum(d.steps_at(hour) for d in days) for hour in WAKING_HOURS}
    return _first_max(totals)


def most_notification_hour(days: List[DayActivitySummary]) -> Optional[int]:
    """Waking hour with the most reminders across all days."""
    totals = {hour: sum(d.notifications_at(hour) for d in days) for hour in WAKING_HOURS}
    return _first_max(totals)


def most_active_window(days: List[DayActivitySummary]) -> Optional[HourWindow]:
    """
    Two-hour window with the highest average steps.

    Averages only over days that had any steps in that window, so rest days
    don't drag a habitual walk time down.
    """
    best: Optional[HourWindow] = None
    for start in range(WAKING_HOURS.start, WAKING_HOURS.stop - WINDOW_HOURS + 1):
        end = start + WINDOW_HOURS - 1
        window_steps = [
            sum(d.steps_at(h) for h in range(start, end + 1)) for d in days
        ]
        active = [s for s in window_steps if s > 0]
        if not active:
            continue
        average = sum(active) / len(active)
        if best is None or average > best.average:
            best = HourWindow(start_hour=start, end_hour=end, average=average)
    return best


def most_inactive_window(days: List[DayActivitySummary]) -> Optional[HourWindow]:
    """Two-hour window with the highest average reminders per day."""
    if not days:
        return None
    best: Optional[HourWindow] = None
    for start in range(WAKING_HOURS.start, WAKING_HOURS.stop - WINDOW_HOURS + 1):
        end = start + WINDOW_HOURS - 1
        total = sum(d.notifications_at(h) for d in days for h in range(start, end + 1))
        average = total / len(days)
        if average > 0 and (best is None or average > best.average):
            best = HourWindow(start_hour=start, end_hour=end, average=average)
    return best


def consistency_score(days: List[DayActivitySummary]) -> int:
    if not days:
        return 0
    required_days = len(days) * CONSISTENCY_DAY_FRACTION
    consistent_hours = 0
    for hour in WAKING_HOURS:
        active_days = sum(1 for d in days if d.steps_at(hour) >= MIN_ACTIVE_STEPS_PER_HOUR)
        if active_days >= required_days:
            consistent_hours += 1
    return int(consistent_hours / len(WAKING_HOURS) * 100)


def goal_achievement_rate(days: List[DayActivitySummary]) -> float:
    if not days:
        return 0.0
    return sum(1 for d in days if d.goal_met) / len(days)


def activity_notification_correlation(days: List[DayActivitySummary]) -> float:
    """
    How well reminders line up with idle hours, 0.0-1.0.

    Each waking hour expects one reminder if it had under
    MIN_ACTIVE_STEPS_PER_HOUR steps and none otherwise; the score is the
    mean agreement between expectation and what was actually sent.
    """
    scores = []
    for d in days:
        for h in d.hourly:
            if h.hour not in WAKING_HOURS:
                continue
            expected = 1.0 if h.steps < MIN_ACTIVE_STEPS_PER_HOUR else 0.0
            diff = abs(expected - h.notifications)
            scores.append(1.0 - min(diff, 1.0))
    return sum(scores) / len(scores) if scores else 0.0


def summarize(days: List[DayActivitySummary]) -> ActivityInsights:
    total_steps = sum(d.total_steps for d in days)
    return ActivityInsights(
        days_analyzed=len(days),
        peak_activity_hour=peak_activity_hour(days),
        most_notification_hour=most_notification_hour(days),
        most_active_window=most_active_window(days),
        most_inactive_window=most_inactive_window(days),
        consistency_score=consistency_score(days),
        average_daily_steps=total_steps // len(days) if days else 0,
        total_notifications=sum(d.total_notifications for d in days),
        goals_achieved=sum(1 for d in days if d.goal_met),
        goal_achievement_rate=goal_achievement_rate(days),
        activity_notification_correlation=activity_notification_correlation(days),
    )
