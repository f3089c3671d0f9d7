"""
Local-notification delivery.

NotificationDeliverer is the port the schedulers talk to. It can schedule a
reminder for a calendar time, present one immediately, cancel by identifier
prefix and list what is pending. APSchedulerDeliverer backs the port with
date-triggered APScheduler jobs whose ids are the reminder identifiers, so
scheduling an identifier that is already pending replaces it.

A scheduled reminder that comes due is not shown directly. It is handed to
the due handler (StepperService.handle_due) so the owning scheduler can
re-check its guards at fire time.
"""
import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Protocol

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler

from stepper.models.state import NotificationKind

logger = logging.getLogger(__name__)


@dataclass
class Reminder:
    """A local notification, either pending (fire_at set) or shown immediately."""

    identifier: str
    kind: NotificationKind
    title: str
    body: str
    fire_at: Optional[datetime] = None
    repeat_index: Optional[int] = None  # 1-based position in a repeat series


DueHandler = Callable[[Reminder], None]
Presenter = Callable[[Reminder], None]


class NotificationDeliverer(Protocol):
    def set_due_handler(self, handler: DueHandler) -> None: ...

    def schedule_at(self, reminder: Reminder, when: datetime) -> Reminder: ...

    def present(self, reminder: Reminder) -> None: ...

    def cancel(self, prefix: str) -> int: ...

    def pending(self, prefix: str = "") -> List[Reminder]: ...


def log_presenter(reminder: Reminder) -> None:
    """Default presenter: write the notification to the log."""
    logger.info("🔔 %s: %s", reminder.title, reminder.body)


class APSchedulerDeliverer:
    """NotificationDeliverer on top of an APScheduler scheduler (started or not)."""

    def __init__(self, scheduler: BaseScheduler, presenter: Optional[Presenter] = None):
        """
        Args:
            scheduler: APScheduler instance shared with the polling jobs.
            presenter: Callable that actually shows a notification.
                Defaults to log_presenter.
        """
        self.scheduler = scheduler
        self._presenter = presenter or log_presenter
        self._on_due: Optional[DueHandler] = None

    def set_due_handler(self, handler: DueHandler) -> None:
        self._on_due = handler

    def schedule_at(self, reminder: Reminder, when: datetime) -> Reminder:
        reminder = dataclasses.replace(reminder, fire_at=when)
        self._remove(reminder.identifier)
        self.scheduler.add_job(
            self._fire,
            trigger="date",
            run_date=when,
            id=reminder.identifier,
            args=[reminder],
            replace_existing=True,
            misfire_grace_time=None,  # still deliver after a suspend/wake
        )
        logger.debug("Scheduled %s for %s", reminder.identifier, when.isoformat(timespec="minutes"))
        return reminder

    def present(self, reminder: Reminder) -> None:
        self._presenter(reminder)

    def cancel(self, prefix: str) -> int:
        removed = 0
        for job in self.scheduler.get_jobs():
            if _is_reminder_job(job) and job.id.startswith(prefix):
                self._remove(job.id)
                removed += 1
        if removed:
            logger.debug("Cancelled %d pending %s* reminders", removed, prefix)
        return removed

    def pending(self, prefix: str = "") -> List[Reminder]:
        reminders = [
            job.args[0]
            for job in self.scheduler.get_jobs()
            if _is_reminder_job(job) and job.id.startswith(prefix)
        ]
        return sorted(reminders, key=lambda r: r.fire_at or datetime.min)

    # ─── Internal helpers ─────────────────────────────────────────────────────

    async def _fire(self, reminder: Reminder) -> None:
        """Job body. Runs on the event loop so handlers never race each other."""
        try:
            if self._on_due is None:
                self.present(reminder)
            else:
                self._on_due(reminder)
        except Exception as exc:
            logger.error("Handling due reminder %s failed: %s", reminder.identifier, exc)

    def _remove(self, job_id: str) -> None:
        try:
            self.scheduler.remove_job(job_id)
        except JobLookupError:
            pass


def _is_reminder_job(job) -> bool:
    return bool(job.args) and isinstance(job.args[0], Reminder)
