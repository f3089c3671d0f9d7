"""
Per-day step history rows (the StepHistory table).

Written whenever a fresh daily total is observed. Read for weekday
averages on the history screen. Nothing in the reminder policy depends on
these rows.
"""
import logging
from datetime import date, timedelta

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from stepper.models.steps import StepHistory

logger = logging.getLogger(__name__)

DEFAULT_TARGET = 10000


def fetch_or_create(session: Session, day: date) -> StepHistory:
    """Return the row for `day`, adding a zero-step row to the session if missing."""
    existing = session.exec(select(StepHistory).where(StepHistory.day == day)).first()
    if existing:
        return existing
    row = StepHistory(day=day, steps=0, target_steps=DEFAULT_TARGET)
    session.add(row)
    return row


def save_step_data(engine, steps: int, day: date, target_steps: int) -> bool:
    """Upsert the day's total. Best-effort: failures are logged, not raised."""
    try:
        with Session(engine) as s:
            row = fetch_or_create(s, day)
            row.steps = steps
            row.target_steps = target_steps
            s.add(row)
            s.commit()
        return True
    except SQLAlchemyError as exc:
        logger.warning("Failed to save step history for %s: %s", day, exc)
        return False


def average_steps_for_weekday(engine, weekday: int, today: date, days: int = 30) -> int:
    """
    Mean daily steps for one weekday (0=Monday … 6=Sunday) over the last `days` days,
    excluding today. 0 when there is no data.
    """
    if not 0 <= weekday <= 6:
        raise ValueError(f"weekday must be 0-6, got {weekday}")
    with Session(engine) as s:
        rows = s.exec(
            select(StepHistory).where(
                StepHistory.day >= today - timedelta(days=days),
                StepHistory.day < today,
            )
        ).all()
    matching = [r.steps for r in rows if r.day.weekday() == weekday]
    if not matching:
        return 0
    return sum(matching) // len(matching)
