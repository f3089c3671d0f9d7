"""
Tests for InactivityScheduler.

Activity is observed at 10:00 on the fixture clock with a 30 minute
threshold and 09:00-17:00 active hours unless a test says otherwise.
"""
from datetime import datetime, time, timedelta

import pytest

from stepper.activity.clock import ActivityClock
from stepper.models.state import NotificationKind
from stepper.notifications.history import NotificationHistory
from stepper.notifications.inactivity import (
    CHECK_ID,
    INACTIVITY_PREFIX,
    REPEAT_PREFIX,
    InactivityScheduler,
)
from stepper.notifications.settings_manager import NotificationSettingsManager


@pytest.fixture(name="manager")
def manager_fixture(store):
    manager = NotificationSettingsManager(store)
    manager.update(inactivity_enabled=True, inactivity_minutes=30)
    manager.add_interval(time(9, 0), time(17, 0))
    return manager


@pytest.fixture(name="activity")
def activity_fixture(store, clock):
    ac = ActivityClock(store, clock)
    ac.observe_step_count(100)
    return ac


@pytest.fixture(name="history")
def history_fixture(store, clock):
    return NotificationHistory(store, clock)


@pytest.fixture(name="scheduler")
def scheduler_fixture(activity, deliverer, history, manager, clock):
    return InactivityScheduler(activity, deliverer, history, manager, clock)


class TestCheckAndNotify:
    def test_under_threshold_sends_nothing(self, scheduler, deliverer, clock):
        clock.advance(minutes=29)
        assert scheduler.check_and_notify() is None
        assert deliverer.presented == []

    def test_over_threshold_inside_hours_sends(self, scheduler, deliverer, history, clock):
        clock.advance(minutes=31)
        reminder = scheduler.check_and_notify()

        assert reminder is not None
        assert reminder.kind == NotificationKind.INACTIVITY
        assert "31 minutes" in reminder.body
        assert deliverer.presented == [reminder]
        assert history.count_for_day(clock.now) == 1

    def test_outside_active_hours_sends_nothing(self, store, clock, deliverer, history, manager):
        clock.set(datetime(2025, 6, 11, 17, 0))
        ac = ActivityClock(store, clock)
        ac.observe_step_count(100)
        scheduler = InactivityScheduler(ac, deliverer, history, manager, clock)

        clock.advance(minutes=31)
        assert scheduler.check_and_notify() is None
        assert deliverer.presented == []

    def test_no_active_hours_sends_nothing(self, scheduler, manager, deliverer, clock):
        manager.remove_interval(0)
        clock.advance(minutes=45)
        assert scheduler.check_and_notify() is None
        assert deliverer.presented == []

    def test_spacing_guard_suppresses_duplicate(self, scheduler, deliverer, clock):
        clock.advance(minutes=31)
        assert scheduler.check_and_notify() is not None
        clock.advance(seconds=30)
        assert scheduler.check_and_notify() is None
        assert len(deliverer.presented) == 1

    def test_spacing_elapsed_allows_next(self, scheduler, deliverer, clock):
        clock.advance(minutes=31)
        scheduler.check_and_notify()
        clock.advance(seconds=61)
        assert scheduler.check_and_notify() is not None
        assert len(deliverer.presented) == 2

    def test_reminder_does_not_reset_activity(self, scheduler, activity, clock):
        active_at = activity.last_activity_time
        clock.advance(minutes=31)
        scheduler.check_and_notify()
        assert activity.last_activity_time == active_at
        assert activity.last_notification_time == clock.now

    def test_disabled_sends_nothing(self, scheduler, manager, deliverer, clock):
        manager.update(inactivity_enabled=False)
        clock.advance(hours=2)
        assert scheduler.check_and_notify() is None
        assert deliverer.presented == []


class TestReevaluate:
    def test_arms_check_at_threshold(self, scheduler, deliverer, clock):
        clock.advance(minutes=10)
        scheduler.reevaluate()

        pending = deliverer.pending(INACTIVITY_PREFIX)
        assert [r.identifier for r in pending] == [CHECK_ID]
        assert pending[0].fire_at == datetime(2025, 6, 11, 10, 30)
        assert scheduler.state == "armed"

    def test_over_threshold_sends_and_schedules_repeats(self, scheduler, deliverer, clock):
        clock.advance(minutes=31)
        scheduler.reevaluate()

        assert len(deliverer.presented) == 1
        repeats = deliverer.pending(REPEAT_PREFIX)
        assert len(repeats) == 12
        assert [r.repeat_index for r in repeats] == list(range(1, 13))
        assert repeats[0].fire_at == clock.now + timedelta(minutes=30)
        assert repeats[-1].fire_at == clock.now + timedelta(minutes=30 * 12)
        assert all(r.kind == NotificationKind.REPEATED_INACTIVITY for r in repeats)
        assert deliverer.pending(CHECK_ID) == []
        assert scheduler.state == "repeat_armed"

    def test_idempotent(self, scheduler, deliverer, clock):
        clock.advance(minutes=31)
        scheduler.reevaluate()
        first = [(r.identifier, r.fire_at) for r in deliverer.pending()]

        scheduler.reevaluate()
        second = [(r.identifier, r.fire_at) for r in deliverer.pending()]

        assert first == second
        assert len(deliverer.presented) == 1

    def test_new_activity_replaces_repeats_with_check(self, scheduler, activity, deliverer, clock):
        clock.advance(minutes=31)
        scheduler.reevaluate()

        clock.advance(minutes=5)
        activity.observe_step_count(400)
        scheduler.reevaluate()

        assert [r.identifier for r in deliverer.pending()] == [CHECK_ID]
        assert deliverer.pending()[0].fire_at == clock.now + timedelta(minutes=30)

    def test_disabled_cancels_everything(self, scheduler, manager, deliverer, clock):
        clock.advance(minutes=31)
        scheduler.reevaluate()

        manager.update(inactivity_enabled=False)
        scheduler.reevaluate()

        assert deliverer.pending() == []
        assert scheduler.state == "disabled"

    def test_custom_repeat_limit(self, activity, deliverer, history, manager, clock):
        scheduler = InactivityScheduler(activity, deliverer, history, manager, clock, max_repeats=3)
        clock.advance(minutes=40)
        scheduler.reevaluate()
        assert len(deliverer.pending(REPEAT_PREFIX)) == 3


class TestHandleDue:
    def test_check_firing_sends_and_arms_repeats(self, scheduler, deliverer, clock):
        scheduler.reevaluate()
        deliverer.set_due_handler(scheduler.handle_due)

        clock.advance(minutes=30)
        deliverer.fire_due(clock.now)

        assert len(deliverer.presented) == 1
        assert len(deliverer.pending(REPEAT_PREFIX)) == 12

    def test_repeat_firing_sends_repeated_kind(self, scheduler, deliverer, history, clock):
        clock.advance(minutes=31)
        scheduler.reevaluate()
        deliverer.set_due_handler(scheduler.handle_due)

        clock.advance(minutes=30)
        deliverer.fire_due(clock.now)

        assert len(deliverer.presented) == 2
        assert deliverer.presented[-1].kind == NotificationKind.REPEATED_INACTIVITY
        assert "61 minutes" in deliverer.presented[-1].body
        assert len(deliverer.pending(REPEAT_PREFIX)) == 11
        kinds = [r.kind for r in history.records]
        assert kinds == [NotificationKind.INACTIVITY, NotificationKind.REPEATED_INACTIVITY]

    def test_repeat_outside_hours_is_skipped(self, store, clock, deliverer, history, manager):
        clock.set(datetime(2025, 6, 11, 16, 0))
        ac = ActivityClock(store, clock)
        ac.observe_step_count(100)
        scheduler = InactivityScheduler(ac, deliverer, history, manager, clock)
        deliverer.set_due_handler(scheduler.handle_due)

        clock.advance(minutes=31)  # 16:31, inside
        scheduler.reevaluate()
        clock.advance(minutes=30)  # 17:01, outside
        deliverer.fire_due(clock.now)

        assert len(deliverer.presented) == 1
