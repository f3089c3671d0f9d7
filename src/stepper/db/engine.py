"""SQLModel engine singleton."""
from sqlmodel import SQLModel, create_engine

from stepper.config import get_settings

_engine = None


def get_engine():
    """Return the module-level engine, creating it on first call."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_engine(
            settings.database_url,
            connect_args={"check_same_thread": False},  # SQLite only; jobs run off the main thread
        )
        # Import all models so metadata is populated before create_all
        from stepper.models.kv import KeyValueEntry  # noqa
        from stepper.models.steps import StepHistory, StepSample  # noqa
        SQLModel.metadata.create_all(_engine)
        from stepper.db.migrations import run_migrations
        run_migrations(_engine)
    return _engine


