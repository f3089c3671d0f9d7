"""Step data tables: per-day history and raw samples from the health source."""
from datetime import date, datetime
from typing import Optional

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class StepHistory(SQLModel, table=True):
    """One row per calendar day, used for weekday averages and history charts."""

    id: Optional[int] = Field(default=None, primary_key=True)
    day: date = Field(unique=True, index=True)
    steps: int = 0
    target_steps: int = 10000
    updated_at: datetime = Field(default_factory=datetime.now, sa_type=DateTime)  # naive local time


class StepSample(SQLModel, table=True):
    """
    A step count recorded over a short interval (local time).
    Imported from device exports; summed into daily and hourly totals.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    recorded_at: datetime = Field(index=True, sa_type=DateTime)  # start of the sample interval, naive local
    steps: int
    source: Optional[str] = None  # e.g. "watch", "phone", "csv"
