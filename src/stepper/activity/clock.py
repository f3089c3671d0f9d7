"""
ActivityClock — remembers the last observed step count and when the user
last moved.

Only a strictly higher step count counts as movement. Sending a reminder
touches last_notification_time and nothing else: if reminders reset
last_activity_time, each repeat would push the next one back and the user
would never be reminded again.

Step counts are daily totals, so once the stored count belongs to an
earlier calendar day the comparison restarts from zero.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from stepper.db.kv_store import KeyValueStore
from stepper.models.state import ActivityState

logger = logging.getLogger(__name__)

ACTIVITY_STATE_KEY = "activity_state"


class ActivityClock:
    def __init__(self, store: KeyValueStore, now_fn: Callable[[], datetime] = datetime.now):
        self.store = store
        self._now = now_fn
        self.state = store.load(ACTIVITY_STATE_KEY, ActivityState) or ActivityState(
            last_activity_time=now_fn()
        )

    @property
    def last_step_count(self) -> int:
        return self.state.last_step_count

    @property
    def last_activity_time(self) -> datetime:
        return self.state.last_activity_time

    @property
    def last_notification_time(self) -> Optional[datetime]:
        return self.state.last_notification_time

    def observe_step_count(self, count: int, now: Optional[datetime] = None) -> bool:
        """
        Record a step-count observation.

        Returns:
            True if the count rose above the last one ("became active"),
            in which case last_activity_time is now and the state is saved.
        """
        now = now or self._now()
        today = now.date()
        step_date = self.state.step_date
        new_day = step_date is not None and today > step_date
        baseline = 0 if new_day else self.state.last_step_count

        if count <= baseline:
            if new_day:
                # Rebase on today's total without claiming movement
                self.state.last_step_count = count
                self.state.step_date = today
                self.save()
            return False

        logger.info("Became active: %d → %d steps", baseline, count)
        self.state.last_step_count = count
        self.state.last_activity_time = now
        self.state.step_date = today
        self.save()
        return True

    def time_since_last_activity(self, now: Optional[datetime] = None) -> timedelta:
        now = now or self._now()
        return max(now - self.state.last_activity_time, timedelta(0))

    def time_since_last_notification(self, now: Optional[datetime] = None) -> Optional[timedelta]:
        """None if no reminder has ever been sent."""
        if self.state.last_notification_time is None:
            return None
        now = now or self._now()
        return now - self.state.last_notification_time

    def record_notification(self, now: Optional[datetime] = None) -> None:
        """Note that a reminder went out. Does not touch last_activity_time."""
        self.state.last_notification_time = now or self._now()
        self.save()

    def save(self) -> bool:
        return self.store.save(ACTIVITY_STATE_KEY, self.state)
