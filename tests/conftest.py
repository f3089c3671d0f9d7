"""Shared test fixtures."""
import dataclasses
from datetime import datetime, timedelta
from typing import Generator

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

# Import all models so SQLModel.metadata knows about them
from stepper.models.kv import KeyValueEntry  # noqa: F401
from stepper.models.steps import StepHistory, StepSample  # noqa: F401
from stepper.db.kv_store import KeyValueStore


class FakeClock:
    """Callable stand-in for datetime.now that only moves when told to."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, moment: datetime) -> datetime:
        self.now = moment
        return self.now


class FakeDeliverer:
    """In-memory NotificationDeliverer: pending reminders by id plus a list of presented ones."""

    def __init__(self):
        self.scheduled = {}
        self.presented = []
        self._on_due = None

    def set_due_handler(self, handler) -> None:
        self._on_due = handler

    def schedule_at(self, reminder, when):
        reminder = dataclasses.replace(reminder, fire_at=when)
        self.scheduled[reminder.identifier] = reminder
        return reminder

    def present(self, reminder) -> None:
        self.presented.append(reminder)

    def cancel(self, prefix: str) -> int:
        doomed = [rid for rid in self.scheduled if rid.startswith(prefix)]
        for rid in doomed:
            del self.scheduled[rid]
        return len(doomed)

    def pending(self, prefix: str = ""):
        return sorted(
            (r for rid, r in self.scheduled.items() if rid.startswith(prefix)),
            key=lambda r: r.fire_at,
        )

    def fire_due(self, now: datetime) -> int:
        """Hand every reminder due at or before `now` to the due handler, oldest first."""
        due = [r for r in self.pending() if r.fire_at <= now]
        for reminder in due:
            # A handler may already have cancelled it
            if self.scheduled.get(reminder.identifier) is not reminder:
                continue
            del self.scheduled[reminder.identifier]
            if self._on_due is None:
                self.present(reminder)
            else:
                self._on_due(reminder)
        return len(due)


@pytest.fixture(name="engine")
def engine_fixture():
    """In-memory SQLite engine. Tables recreated fresh for each test."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="test_session")
def test_session_fixture(engine) -> Generator[Session, None, None]:
    """Provides a DB session connected to in-memory SQLite."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="store")
def store_fixture(engine) -> KeyValueStore:
    return KeyValueStore(engine)


@pytest.fixture(name="clock")
def clock_fixture() -> FakeClock:
    """Wednesday 2025-06-11, 10:00 local time."""
    return FakeClock(datetime(2025, 6, 11, 10, 0))


@pytest.fixture(name="deliverer")
def deliverer_fixture() -> FakeDeliverer:
    return FakeDeliverer()
