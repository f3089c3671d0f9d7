"""
StepperService — owns all reminder state and wires the components together.

Flow for a new daily step total (foreground, polling job or background wake,
all the same path):

  ActivityClock.observe_step_count
    → InactivityScheduler.reevaluate      (only when the count went up)
    → BedtimeScheduler.evaluate           (every update while enabled)
    → GoalAchievementTracker, StepHistory (bookkeeping)

A settings change re-arms only the scheduler whose fields changed.
Reminders that come due are routed back here by the deliverer and
dispatched to their scheduler.

Everything runs on one event loop. There is no locking: each reaction
runs to completion before the next job or callback starts.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, List, Optional

from stepper.activity.clock import ActivityClock
from stepper.analysis.aggregator import ActivityInsights, summarize
from stepper.analysis.summaries import DayActivitySummary, build_day_summary
from stepper.config import Settings, get_settings
from stepper.db.kv_store import KeyValueStore
from stepper.goals.achievements import GoalAchievementTracker
from stepper.goals.targets import TargetStore
from stepper.health.source import HealthDataSource
from stepper.health.step_history import average_steps_for_weekday, save_step_data
from stepper.models.state import Goal, NotificationKind, NotificationSettings
from stepper.notifications.bedtime import BedtimeScheduler
from stepper.notifications.deliverer import NotificationDeliverer, Reminder
from stepper.notifications.history import NotificationHistory
from stepper.notifications.inactivity import InactivityScheduler
from stepper.notifications.settings_manager import NotificationSettingsManager

logger = logging.getLogger(__name__)

INACTIVITY_FIELDS = ("inactivity_enabled", "inactivity_minutes", "active_hours")
BEDTIME_FIELDS = ("bedtime_enabled", "bedtime", "lead_time_minutes")


def _changed(before: NotificationSettings, after: NotificationSettings, fields) -> bool:
    return any(getattr(before, f) != getattr(after, f) for f in fields)


class StepperService:
    def __init__(
        self,
        store: KeyValueStore,
        deliverer: NotificationDeliverer,
        health: HealthDataSource,
        engine=None,
        now_fn: Callable[[], datetime] = datetime.now,
        settings: Optional[Settings] = None,
    ):
        """
        Args:
            store: Key-value store for settings, activity state and histories.
            deliverer: Local-notification deliverer.
            health: Source of step counts.
            engine: SQLAlchemy engine for StepHistory rows. None skips them.
            now_fn: Clock shared by every component.
            settings: App settings. Defaults to get_settings().
        """
        self.config = settings or get_settings()
        self.store = store
        self.deliverer = deliverer
        self.health = health
        self.engine = engine
        self._now = now_fn

        self.settings_manager = NotificationSettingsManager(store)
        self.targets = TargetStore(store, now_fn, default_target=self.config.default_step_target)
        self.clock = ActivityClock(store, now_fn)
        self.history = NotificationHistory(
            store, now_fn, retention_days=self.config.notification_retention_days
        )
        self.achievements = GoalAchievementTracker(store, now_fn)
        self.inactivity = InactivityScheduler(
            self.clock,
            deliverer,
            self.history,
            self.settings_manager,
            now_fn,
            min_spacing_seconds=self.config.min_notification_spacing_seconds,
            max_repeats=self.config.max_inactivity_repeats,
        )
        self.bedtime = BedtimeScheduler(deliverer, self.history, self.settings_manager, now_fn)

        self._applied_settings = self.settings_manager.settings.model_copy(deep=True)
        self.settings_manager.subscribe(self._on_settings_changed)
        deliverer.set_due_handler(self.handle_due)

    @property
    def notification_settings(self) -> NotificationSettings:
        return self.settings_manager.settings

    # ─── Step updates ─────────────────────────────────────────────────────────

    def observe_step_count(self, steps: int) -> bool:
        """
        Feed today's step total into the policy.

        Returns:
            True if the count went up (the user became active).
        """
        now = self._now()
        target = self.targets.current_target

        became_active = self.clock.observe_step_count(steps, now)
        if became_active:
            self.inactivity.reevaluate(now)

        if self.notification_settings.bedtime_enabled:
            self.bedtime.evaluate(steps, target, now)

        self.achievements.check_for_goal_achievement(steps, target)
        if self.engine is not None:
            save_step_data(self.engine, steps, now.date(), target)
        return became_active

    async def refresh(self) -> int:
        """Pull today's total from the health source and process it."""
        steps = await self.health.get_today_steps()
        self.observe_step_count(steps)
        return steps

    # ─── Lifecycle ────────────────────────────────────────────────────────────

    async def on_foreground(self) -> None:
        """
        Catch up after being suspended.

        If steps rose while we were away, that counts as activity now.
        Otherwise check for inactivity immediately and re-arm.
        """
        steps = await self.health.get_today_steps()
        if not self.observe_step_count(steps):
            self.inactivity.reevaluate()

    def on_background(self) -> None:
        self.clock.save()
        self.history.save()

    # ─── Reminders ────────────────────────────────────────────────────────────

    def handle_due(self, reminder: Reminder) -> None:
        """Due handler registered with the deliverer."""
        if reminder.kind == NotificationKind.BEDTIME:
            self.bedtime.handle_due(reminder)
        else:
            self.inactivity.handle_due(reminder)

    def set_goal(self, value: int) -> Goal:
        """Set today's step goal and re-plan the bedtime reminder against it."""
        goal = self.targets.save_target(value)
        if self.notification_settings.bedtime_enabled:
            self.bedtime.evaluate(self._today_steps(), value)
        return goal

    def _on_settings_changed(self, settings: NotificationSettings) -> None:
        """Re-arm only the scheduler whose settings changed."""
        previous, self._applied_settings = self._applied_settings, settings.model_copy(deep=True)

        if _changed(previous, settings, INACTIVITY_FIELDS):
            self.inactivity.reevaluate()

        if _changed(previous, settings, BEDTIME_FIELDS):
            if settings.bedtime_enabled:
                self.bedtime.evaluate(self._today_steps(), self.targets.current_target)
            else:
                self.bedtime.cancel()

    def _today_steps(self) -> int:
        if self.clock.state.step_date == self._now().date():
            return self.clock.last_step_count
        return 0

    # ─── Insights ─────────────────────────────────────────────────────────────

    async def build_day_summaries(self, days: int = 30) -> List[DayActivitySummary]:
        """Hourly steps + reminder counts for the last `days` days, newest first."""
        today = self._now().date()
        summaries = []
        for offset in range(days):
            day = today - timedelta(days=offset)
            hourly = await self.health.get_hourly_steps(day)
            summaries.append(
                build_day_summary(day, hourly, self.history, self.targets.target_for_date(day))
            )
        return summaries

    async def insights(self, days: int = 30) -> ActivityInsights:
        return summarize(await self.build_day_summaries(days))

    def weekday_average(self, weekday: int) -> int:
        """Average daily steps for a weekday (0=Monday) from StepHistory rows."""
        if self.engine is None:
            return 0
        return average_steps_for_weekday(
            self.engine, weekday, self._now().date(), days=self.config.weekday_average_days
        )
