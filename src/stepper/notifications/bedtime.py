"""
Bedtime reminder: one "N steps to go" nudge, lead_time before bedtime, while
the daily goal is unmet.

At most one bedtime reminder is ever pending. Each evaluation cancels the
previous one first and then decides again from the current step count.
"""
import logging
from datetime import datetime, time, timedelta
from typing import Callable, Optional

from stepper.models.state import NotificationKind
from stepper.notifications.content import bedtime_message
from stepper.notifications.deliverer import NotificationDeliverer, Reminder
from stepper.notifications.history import NotificationHistory
from stepper.notifications.settings_manager import NotificationSettingsManager

logger = logging.getLogger(__name__)

BEDTIME_ID = "bedtime-reminder"


def next_bedtime(now: datetime, bedtime: time) -> datetime:
    """Today's bedtime, or tomorrow's if today's has already passed."""
    candidate = datetime.combine(now.date(), bedtime)
    if candidate < now:
        candidate += timedelta(days=1)
    return candidate


class BedtimeScheduler:
    def __init__(
        self,
        deliverer: NotificationDeliverer,
        history: NotificationHistory,
        settings: NotificationSettingsManager,
        now_fn: Callable[[], datetime] = datetime.now,
    ):
        self.deliverer = deliverer
        self.history = history
        self.settings = settings
        self._now = now_fn

    def evaluate(
        self, current_steps: int, target_steps: int, now: Optional[datetime] = None
    ) -> Optional[Reminder]:
        """
        Replace the pending bedtime reminder based on today's progress.

        Returns:
            The newly scheduled reminder, or None if the goal is met or the
            reminder time has already passed.
        """
        now = now or self._now()
        self.cancel()

        if current_steps >= target_steps:
            logger.debug("Goal met (%d/%d); no bedtime reminder", current_steps, target_steps)
            return None

        settings = self.settings.settings
        bedtime = next_bedtime(now, settings.bedtime)
        notify_at = bedtime - settings.lead_time
        if notify_at <= now:
            logger.debug("Bedtime reminder time %s has passed", notify_at.strftime("%H:%M"))
            return None

        steps_remaining = target_steps - current_steps
        title, body = bedtime_message(steps_remaining, settings.lead_time)
        reminder = self.deliverer.schedule_at(
            Reminder(identifier=BEDTIME_ID, kind=NotificationKind.BEDTIME, title=title, body=body),
            notify_at,
        )
        logger.info(
            "Bedtime reminder scheduled for %s (%d steps remaining)",
            notify_at.strftime("%Y-%m-%d %H:%M"),
            steps_remaining,
        )
        return reminder

    def cancel(self) -> int:
        return self.deliverer.cancel(BEDTIME_ID)

    def handle_due(self, reminder: Reminder, now: Optional[datetime] = None) -> None:
        """Show the reminder and log it to history."""
        self.deliverer.present(reminder)
        self.history.record(NotificationKind.BEDTIME, at=now or self._now())
