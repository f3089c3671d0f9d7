"""
Inactivity reminders.

States (derived from the settings flag and what is pending):

  disabled      inactivity_enabled is off; nothing is scheduled
  armed         under the threshold; one check pending at the moment the
                threshold will be reached
  repeat_armed  threshold reached; the first reminder went out (if the
                guards allowed it) and follow-up checks are pending at
                threshold × 1..12 from that moment
  idle          enabled, nothing pending (the repeat series ran out)

reevaluate() is the only way in. It always cancels every pending
inactivity reminder before scheduling from the current state, so calling
it twice in a row leaves exactly the same pending set. The service calls
it on new movement, on settings changes and on foreground.

Every emission is guarded:
  (a) inactive for at least the threshold
  (b) at least min_spacing since the last reminder
  (c) now is inside the configured active hours
A failed guard skips the reminder silently.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from stepper.activity.active_hours import is_within_active_hours
from stepper.activity.clock import ActivityClock
from stepper.models.state import NotificationKind
from stepper.notifications.content import inactivity_message, repeated_inactivity_message
from stepper.notifications.deliverer import NotificationDeliverer, Reminder
from stepper.notifications.history import NotificationHistory
from stepper.notifications.settings_manager import NotificationSettingsManager

logger = logging.getLogger(__name__)

INACTIVITY_PREFIX = "inactivity-"
CHECK_ID = "inactivity-check"
REPEAT_PREFIX = "inactivity-repeat-"

DEFAULT_MIN_SPACING_SECONDS = 60
DEFAULT_MAX_REPEATS = 12


class InactivityScheduler:
    def __init__(
        self,
        clock: ActivityClock,
        deliverer: NotificationDeliverer,
        history: NotificationHistory,
        settings: NotificationSettingsManager,
        now_fn: Callable[[], datetime] = datetime.now,
        min_spacing_seconds: int = DEFAULT_MIN_SPACING_SECONDS,
        max_repeats: int = DEFAULT_MAX_REPEATS,
    ):
        self.clock = clock
        self.deliverer = deliverer
        self.history = history
        self.settings = settings
        self._now = now_fn
        self.min_spacing = timedelta(seconds=min_spacing_seconds)
        self.max_repeats = max_repeats

    @property
    def state(self) -> str:
        if not self.settings.settings.inactivity_enabled:
            return "disabled"
        if self.deliverer.pending(REPEAT_PREFIX):
            return "repeat_armed"
        if self.deliverer.pending(CHECK_ID):
            return "armed"
        return "idle"

    def reevaluate(self, now: Optional[datetime] = None) -> None:
        """Cancel everything pending and schedule again from the current state."""
        now = now or self._now()
        self.deliverer.cancel(INACTIVITY_PREFIX)

        settings = self.settings.settings
        if not settings.inactivity_enabled:
            return

        threshold = settings.inactivity_threshold
        elapsed = self.clock.time_since_last_activity(now)

        if elapsed < threshold:
            self._schedule_check(now + (threshold - elapsed), threshold)
            return

        self.check_and_notify(now)
        self._schedule_repeats(now, elapsed, threshold)

    def check_and_notify(
        self,
        now: Optional[datetime] = None,
        kind: NotificationKind = NotificationKind.INACTIVITY,
    ) -> Optional[Reminder]:
        """
        Run the guards and, if they all pass, show a reminder right away.

        Returns:
            The reminder that was presented, or None if a guard failed.
        """
        now = now or self._now()
        settings = self.settings.settings
        if not settings.inactivity_enabled:
            return None

        elapsed = self.clock.time_since_last_activity(now)
        if elapsed < settings.inactivity_threshold:
            logger.debug("Active %s ago; no inactivity reminder", elapsed)
            return None

        since_last = self.clock.time_since_last_notification(now)
        if since_last is not None and since_last < self.min_spacing:
            logger.debug("Reminder sent %s ago; suppressing duplicate", since_last)
            return None

        if not is_within_active_hours(now, settings.active_hours):
            logger.debug("%s is outside active hours; skipping reminder", now.strftime("%H:%M"))
            return None

        if kind == NotificationKind.REPEATED_INACTIVITY:
            title, body = repeated_inactivity_message(elapsed)
        else:
            title, body = inactivity_message(elapsed)
        reminder = Reminder(
            identifier=f"inactivity-alert-{int(now.timestamp())}",
            kind=kind,
            title=title,
            body=body,
        )
        self.deliverer.present(reminder)
        # Only real movement resets last_activity_time
        self.clock.record_notification(now)
        self.history.record(kind, at=now)
        logger.info("Sent %s reminder (inactive for %d min)", kind.value, elapsed.total_seconds() // 60)
        return reminder

    def handle_due(self, reminder: Reminder, now: Optional[datetime] = None) -> None:
        """Called when a scheduled inactivity reminder comes due."""
        if reminder.repeat_index is None:
            self.reevaluate(now)
        else:
            self.check_and_notify(now, kind=NotificationKind.REPEATED_INACTIVITY)

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _schedule_check(self, when: datetime, threshold: timedelta) -> None:
        title, body = inactivity_message(threshold)
        self.deliverer.schedule_at(
            Reminder(identifier=CHECK_ID, kind=NotificationKind.INACTIVITY, title=title, body=body),
            when,
        )
        logger.info("Inactivity check armed for %s", when.strftime("%H:%M"))

    def _schedule_repeats(self, now: datetime, elapsed: timedelta, threshold: timedelta) -> None:
        for index in range(1, self.max_repeats + 1):
            title, body = repeated_inactivity_message(elapsed + threshold * index)
            self.deliverer.schedule_at(
                Reminder(
                    identifier=f"{REPEAT_PREFIX}{index}",
                    kind=NotificationKind.REPEATED_INACTIVITY,
                    title=title,
                    body=body,
                    repeat_index=index,
                ),
                now + threshold * index,
            )
        logger.info(
            "Scheduled %d follow-up reminders every %d min",
            self.max_repeats,
            threshold.total_seconds() // 60,
        )
