"""
Main entrypoint: runs the reminder service and APScheduler in one process.

Usage:
    python -m stepper                      # starts polling + reminders
    python -m stepper import-steps a.csv   # loads step samples from a CSV export
"""
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)s %(levelname)s %(message)s",
)
logger = logging.getLogger(__name__)


def _run_import(argv) -> None:
    from stepper.scripts.import_steps import main
    main(argv)


async def _run_service() -> None:
    from stepper.config import get_settings
    from stepper.db.engine import get_engine
    from stepper.db.kv_store import KeyValueStore
    from stepper.health.source import StepSampleSource
    from stepper.notifications.deliverer import APSchedulerDeliverer
    from stepper.scheduler.jobs import build_scheduler, register_jobs
    from stepper.service import StepperService

    settings = get_settings()
    engine = get_engine()

    scheduler = build_scheduler()
    service = StepperService(
        store=KeyValueStore(engine),
        deliverer=APSchedulerDeliverer(scheduler),
        health=StepSampleSource(engine),
        engine=engine,
        settings=settings,
    )
    register_jobs(scheduler, service)

    scheduler.start()
    logger.info("Scheduler started (polling steps every %d min)", settings.step_poll_minutes)

    # Catch up on anything that happened while the process was down
    await service.on_foreground()
    logger.info("Stepper is running. Press Ctrl+C to stop.")

    try:
        await asyncio.Event().wait()
    except (KeyboardInterrupt, SystemExit, asyncio.CancelledError):
        logger.info("Shutting down...")
    finally:
        service.on_background()
        scheduler.shutdown(wait=False)
        logger.info("Goodbye.")


if __name__ == "__main__":
    # Dispatch on first argument: `python -m stepper import-steps FILE` or just `python -m stepper`
    if len(sys.argv) > 1 and sys.argv[1] == "import-steps":
        _run_import(sys.argv[2:])
    else:
        asyncio.run(_run_service())
