"""
Notification settings: load, mutate, persist, and tell subscribers.

Every mutation persists immediately and then notifies subscribers, so the
service re-arms the inactivity and bedtime schedulers on any change.
A failed write is logged by the store and the in-memory settings stay
authoritative.
"""
import logging
from datetime import time
from typing import Callable, List

from stepper.db.kv_store import KeyValueStore
from stepper.models.state import NotificationSettings, TimeRange

logger = logging.getLogger(__name__)

SETTINGS_KEY = "notification_settings"

DEFAULT_INTERVAL_START = time(9, 0)
DEFAULT_INTERVAL_END = time(17, 0)

SettingsListener = Callable[[NotificationSettings], None]


class NotificationSettingsManager:
    def __init__(self, store: KeyValueStore):
        self.store = store
        self.settings = store.load(SETTINGS_KEY, NotificationSettings) or NotificationSettings()
        self._listeners: List[SettingsListener] = []

    def subscribe(self, listener: SettingsListener) -> None:
        self._listeners.append(listener)

    def update(self, **changes) -> NotificationSettings:
        """
        Replace one or more settings fields, e.g. update(inactivity_minutes=45).

        Raises:
            pydantic.ValidationError: if a value is out of range.
        """
        merged = self.settings.model_dump()
        merged.update(changes)
        self.settings = NotificationSettings.model_validate(merged)
        self._commit()
        return self.settings

    # ─── Active hours ─────────────────────────────────────────────────────────

    @property
    def active_hours(self) -> List[TimeRange]:
        return self.settings.active_hours

    def add_interval(
        self, start: time = DEFAULT_INTERVAL_START, end: time = DEFAULT_INTERVAL_END
    ) -> None:
        self.settings.active_hours.append(TimeRange(start=start, end=end))
        self._commit()

    def remove_interval(self, index: int) -> None:
        if not 0 <= index < len(self.settings.active_hours):
            logger.warning("No active-hours interval at index %d; ignoring remove", index)
            return
        del self.settings.active_hours[index]
        self._commit()

    def update_interval(self, index: int, start: time, end: time) -> None:
        if not 0 <= index < len(self.settings.active_hours):
            logger.warning("No active-hours interval at index %d; ignoring update", index)
            return
        self.settings.active_hours[index] = TimeRange(start=start, end=end)
        self._commit()

    def _commit(self) -> None:
        self.store.save(SETTINGS_KEY, self.settings)
        for listener in self._listeners:
            listener(self.settings)
