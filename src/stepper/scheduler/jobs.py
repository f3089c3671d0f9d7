"""
APScheduler jobs.

One AsyncIOScheduler carries two kinds of jobs:
  - reminder jobs, added and cancelled by APSchedulerDeliverer
  - the recurring jobs below: step polling (the change feed from the
    health source) and a nightly insights summary

The scheduler runs inside the same process as the service (wired in __main__.py).
Job bodies are coroutines, so they run on the event loop one at a time.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from stepper.config import get_settings

logger = logging.getLogger(__name__)


def build_scheduler() -> AsyncIOScheduler:
    """Create the (not yet started) scheduler shared by reminders and jobs."""
    return AsyncIOScheduler()


def register_jobs(scheduler: AsyncIOScheduler, service) -> None:
    """
    Add the recurring jobs.

    Args:
        scheduler: Scheduler from build_scheduler().
        service: StepperService the jobs drive.
    """
    settings = get_settings()

    scheduler.add_job(
        _poll_steps,
        trigger="interval",
        minutes=settings.step_poll_minutes,
        id="step_poll",
        replace_existing=True,
        kwargs={"service": service},
    )

    scheduler.add_job(
        _daily_insights,
        trigger="cron",
        hour=settings.insights_hour,
        minute=0,
        id="daily_insights",
        replace_existing=True,
        kwargs={"service": service, "days": settings.insights_days},
    )


async def _poll_steps(service) -> None:
    """Fetch today's total and run it through the reminder policy."""
    try:
        steps = await service.refresh()
        logger.debug("Polled %d steps", steps)
    except Exception as exc:
        logger.error("Step poll failed: %s", exc)


async def _daily_insights(service, days: int = 30) -> None:
    """Log a summary of the last `days` days of activity and reminders."""
    try:
        insights = await service.insights(days)
        logger.info(
            "Insights (%d days): avg %d steps/day, peak %s, consistency %d (%s), "
            "goals met %d%%, %d reminders",
            insights.days_analyzed,
            insights.average_daily_steps,
            insights.peak_activity_time or "n/a",
            insights.consistency_score,
            insights.consistency_level,
            insights.goal_success_percent,
            insights.total_notifications,
        )
        if insights.most_inactive_window is not None:
            logger.info("Most reminders fall in %s", insights.most_inactive_window.label)
    except Exception as exc:
        logger.error("Insights job failed: %s", exc)
