"""Tests for NotificationSettingsManager and reminder copy."""
from datetime import time, timedelta
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from stepper.notifications.content import bedtime_message, inactivity_message, repeated_inactivity_message
from stepper.notifications.settings_manager import NotificationSettingsManager


class TestUpdate:
    def test_persists_and_notifies(self, store):
        manager = NotificationSettingsManager(store)
        listener = MagicMock()
        manager.subscribe(listener)

        manager.update(inactivity_enabled=True, inactivity_minutes=45)

        listener.assert_called_once_with(manager.settings)
        restored = NotificationSettingsManager(store).settings
        assert restored.inactivity_enabled is True
        assert restored.inactivity_minutes == 45

    def test_invalid_value_rejected_and_not_saved(self, store):
        manager = NotificationSettingsManager(store)
        listener = MagicMock()
        manager.subscribe(listener)

        with pytest.raises(ValidationError):
            manager.update(inactivity_minutes=0)

        listener.assert_not_called()
        assert manager.settings.inactivity_minutes == 30

    def test_failed_write_keeps_memory_state(self, store):
        manager = NotificationSettingsManager(store)
        store.save = MagicMock(return_value=False)
        manager.update(bedtime=time(23, 45))
        assert manager.settings.bedtime == time(23, 45)


class TestActiveHours:
    def test_add_default_interval(self, store):
        manager = NotificationSettingsManager(store)
        manager.add_interval()
        assert len(manager.active_hours) == 1
        assert manager.active_hours[0].start == time(9, 0)
        assert manager.active_hours[0].end == time(17, 0)

    def test_update_and_remove(self, store):
        manager = NotificationSettingsManager(store)
        manager.add_interval()
        manager.add_interval(time(19, 0), time(21, 0))

        manager.update_interval(0, time(7, 0), time(12, 0))
        manager.remove_interval(1)

        restored = NotificationSettingsManager(store)
        assert [(r.start, r.end) for r in restored.active_hours] == [(time(7, 0), time(12, 0))]

    def test_out_of_range_index_ignored(self, store):
        manager = NotificationSettingsManager(store)
        listener = MagicMock()
        manager.subscribe(listener)

        manager.remove_interval(3)
        manager.update_interval(-1, time(1, 0), time(2, 0))

        listener.assert_not_called()
        assert manager.active_hours == []


class TestContent:
    def test_inactivity_message(self):
        title, body = inactivity_message(timedelta(minutes=31, seconds=50))
        assert title == "Time to Move! 👟"
        assert "31 minutes" in body

    def test_repeated_message(self):
        title, body = repeated_inactivity_message(timedelta(hours=1, minutes=30))
        assert "Still Inactive" in title
        assert "90 minutes" in body

    def test_bedtime_message(self):
        _, body = bedtime_message(6000, timedelta(hours=1, minutes=45))
        assert body == "You need 6000 more steps before bedtime in 1h 45m!"
