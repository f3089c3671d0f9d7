"""
Health-data source.

HealthDataSource is the port the service reads step counts through. Every
method is async, and "no data" comes back as zeros, never as an error.

StepSampleSource implements it over StepSample rows (imported from device
exports by scripts/import_steps.py). SQLite calls are synchronous, so they
run in the default thread pool and keep the event loop free for
scheduler jobs.
"""
import asyncio
from datetime import date, datetime, time, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from sqlalchemy import func
from sqlmodel import Session, select

from stepper.models.steps import StepSample


class HealthDataSource(Protocol):
    async def get_today_steps(self) -> int: ...

    async def get_daily_steps(self, days: int = 7) -> Dict[date, int]: ...

    async def get_hourly_steps(self, day: date) -> List[int]: ...


def _day_bounds(day: date) -> Tuple[datetime, datetime]:
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


class StepSampleSource:
    """HealthDataSource over the local StepSample table."""

    def __init__(self, engine, now_fn: Callable[[], datetime] = datetime.now):
        """
        Args:
            engine: SQLAlchemy engine (SQLModel create_engine result).
            now_fn: Clock used to decide what "today" is.
        """
        self.engine = engine
        self._now = now_fn

    async def _run(self, fn, *args, **kwargs):
        """Run a blocking DB call in the thread pool."""
        loop = asyncio.get_event_loop()
        return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))

    async def get_today_steps(self) -> int:
        return await self._run(self._steps_on, self._now().date())

    async def get_daily_steps(self, days: int = 7) -> Dict[date, int]:
        """Totals for the last `days` days including today, oldest first."""
        today = self._now().date()
        return await self._run(self._daily_totals, today - timedelta(days=days - 1), today)

    async def get_hourly_steps(self, day: date) -> List[int]:
        """24 hourly totals for the given day."""
        return await self._run(self._hourly_totals, day)

    def add_samples(
        self, samples: Iterable[Tuple[datetime, int]], source: Optional[str] = None
    ) -> int:
        """Insert (recorded_at, steps) samples. Returns how many were added."""
        count = 0
        with Session(self.engine) as s:
            for recorded_at, steps in samples:
                s.add(StepSample(recorded_at=recorded_at, steps=int(steps), source=source))
                count += 1
            s.commit()
        return count

    # ─── Sync queries ─────────────────────────────────────────────────────────

    def _steps_on(self, day: date) -> int:
        start, end = _day_bounds(day)
        with Session(self.engine) as s:
            total = s.exec(
                select(func.sum(StepSample.steps)).where(
                    StepSample.recorded_at >= start, StepSample.recorded_at < end
                )
            ).one()
        return int(total or 0)

    def _daily_totals(self, first: date, last: date) -> Dict[date, int]:
        totals = {first + timedelta(days=i): 0 for i in range((last - first).days + 1)}
        start, _ = _day_bounds(first)
        _, end = _day_bounds(last)
        with Session(self.engine) as s:
            rows = s.exec(
                select(StepSample).where(
                    StepSample.recorded_at >= start, StepSample.recorded_at < end
                )
            ).all()
        for row in rows:
            totals[row.recorded_at.date()] += row.steps
        return totals

    def _hourly_totals(self, day: date) -> List[int]:
        hourly = [0] * 24
        start, end = _day_bounds(day)
        with Session(self.engine) as s:
            rows = s.exec(
                select(StepSample).where(
                    StepSample.recorded_at >= start, StepSample.recorded_at < end
                )
            ).all()
        for row in rows:
            hourly[row.recorded_at.hour] += row.steps
        return hourly
