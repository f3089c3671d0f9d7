"""Key-value settings store table."""
from datetime import datetime

from sqlalchemy import DateTime
from sqlmodel import Field, SQLModel


class KeyValueEntry(SQLModel, table=True):
    """One small JSON blob per key (settings, activity state, histories)."""

    key: str = Field(primary_key=True)
    value_json: str
    updated_at: datetime = Field(default_factory=datetime.now, sa_type=DateTime)  # naive local time
