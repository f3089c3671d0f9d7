"""
Additive schema migrations for the step tables.

create_all() never alters existing tables, so columns added after the first
release are listed in ADDED_COLUMNS and appended with ALTER TABLE ADD COLUMN
when a database predates them. get_engine() runs this after create_all(),
so a fresh file and an old one end up with the same schema.

The key-value table holds JSON blobs; their layout changes are handled by
the blob models themselves (see models/state.py), not here.
"""
from typing import Set

from sqlalchemy import text

# (table, column, SQLite column definition), in the order they were introduced
ADDED_COLUMNS = [
    # StepHistory: early databases stored steps only
    ("stephistory", "target_steps", "INTEGER NOT NULL DEFAULT 10000"),
    ("stephistory", "updated_at", "DATETIME"),
    # StepSample: device attribution
    ("stepsample", "source", "TEXT"),
]


def run_migrations(engine) -> None:
    """Add any missing columns. Idempotent; SQLite only (uses PRAGMA table_info).

    Args:
        engine: SQLAlchemy engine (SQLModel create_engine result).
    """
    with engine.connect() as conn:
        for table, column, definition in ADDED_COLUMNS:
            if column not in _existing_columns(conn, table):
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {definition}"))
        conn.commit()


def _existing_columns(conn, table: str) -> Set[str]:
    """Column names of `table` as SQLite reports them (empty if the table is missing)."""
    return {row[1] for row in conn.execute(text(f"PRAGMA table_info({table})"))}
