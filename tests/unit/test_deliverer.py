"""
Tests for APSchedulerDeliverer.

The scheduler is never started: APScheduler keeps jobs added before start()
in a pending list that get_jobs()/remove_job() operate on, which is enough
to check what would fire and when.
"""
from datetime import datetime
from unittest.mock import MagicMock

import pytest
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from stepper.models.state import NotificationKind
from stepper.notifications.deliverer import APSchedulerDeliverer, Reminder


def _reminder(identifier: str, kind=NotificationKind.INACTIVITY, **kwargs) -> Reminder:
    return Reminder(identifier=identifier, kind=kind, title="t", body="b", **kwargs)


@pytest.fixture(name="scheduler")
def scheduler_fixture():
    return AsyncIOScheduler()


@pytest.fixture(name="presenter")
def presenter_fixture():
    return MagicMock()


@pytest.fixture(name="apdeliverer")
def apdeliverer_fixture(scheduler, presenter):
    return APSchedulerDeliverer(scheduler, presenter=presenter)


class TestScheduleAt:
    def test_adds_date_job_with_reminder_id(self, apdeliverer, scheduler):
        when = datetime(2025, 6, 11, 20, 30)
        reminder = apdeliverer.schedule_at(_reminder("bedtime-reminder", NotificationKind.BEDTIME), when)

        assert reminder.fire_at == when
        job = scheduler.get_jobs()[0]
        assert job.id == "bedtime-reminder"
        assert job.trigger.__class__.__name__ == "DateTrigger"
        assert job.args[0] is reminder

    def test_same_identifier_replaces(self, apdeliverer, scheduler):
        apdeliverer.schedule_at(_reminder("inactivity-check"), datetime(2025, 6, 11, 10, 30))
        apdeliverer.schedule_at(_reminder("inactivity-check"), datetime(2025, 6, 11, 11, 0))

        pending = apdeliverer.pending()
        assert len(pending) == 1
        assert pending[0].fire_at == datetime(2025, 6, 11, 11, 0)
        assert len(scheduler.get_jobs()) == 1


class TestCancelAndPending:
    @pytest.fixture(name="filled")
    def filled_fixture(self, apdeliverer, scheduler):
        apdeliverer.schedule_at(_reminder("inactivity-repeat-2"), datetime(2025, 6, 11, 11, 30))
        apdeliverer.schedule_at(_reminder("inactivity-repeat-1"), datetime(2025, 6, 11, 11, 0))
        apdeliverer.schedule_at(_reminder("bedtime-reminder", NotificationKind.BEDTIME), datetime(2025, 6, 11, 20, 30))
        # A non-reminder job sharing the scheduler
        scheduler.add_job(lambda: None, trigger="interval", minutes=5, id="inactivity-poll")
        return apdeliverer

    def test_pending_sorted_by_fire_time(self, filled):
        ids = [r.identifier for r in filled.pending()]
        assert ids == ["inactivity-repeat-1", "inactivity-repeat-2", "bedtime-reminder"]

    def test_pending_by_prefix(self, filled):
        assert len(filled.pending("inactivity-")) == 2

    def test_cancel_by_prefix_leaves_other_jobs(self, filled, scheduler):
        assert filled.cancel("inactivity-") == 2
        assert {j.id for j in scheduler.get_jobs()} == {"bedtime-reminder", "inactivity-poll"}

    def test_cancel_nothing(self, apdeliverer):
        assert apdeliverer.cancel("inactivity-") == 0


class TestFire:
    async def test_due_handler_receives_reminder(self, apdeliverer, presenter):
        handler = MagicMock()
        apdeliverer.set_due_handler(handler)
        reminder = _reminder("inactivity-check")

        await apdeliverer._fire(reminder)

        handler.assert_called_once_with(reminder)
        presenter.assert_not_called()

    async def test_presents_without_handler(self, apdeliverer, presenter):
        reminder = _reminder("bedtime-reminder", NotificationKind.BEDTIME)
        await apdeliverer._fire(reminder)
        presenter.assert_called_once_with(reminder)

    async def test_handler_exception_does_not_propagate(self, apdeliverer):
        """A failing handler must not take the scheduler down."""
        apdeliverer.set_due_handler(MagicMock(side_effect=RuntimeError("boom")))
        await apdeliverer._fire(_reminder("inactivity-check"))

    def test_present_uses_presenter(self, apdeliverer, presenter):
        reminder = _reminder("inactivity-alert-1")
        apdeliverer.present(reminder)
        presenter.assert_called_once_with(reminder)

    def test_default_presenter_logs(self, scheduler, caplog):
        deliverer = APSchedulerDeliverer(scheduler)
        with caplog.at_level("INFO", logger="stepper.notifications.deliverer"):
            deliverer.present(Reminder("x", NotificationKind.BEDTIME, "Stepper Reminder", "You need 10 more steps"))
        assert "You need 10 more steps" in caplog.text
