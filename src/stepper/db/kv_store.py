"""
Key-value store for small typed blobs (settings, activity state, histories).

Writes are best-effort: a failed write is logged and reported through the
return value, never raised. Callers keep their in-memory copy as the source
of truth until the next successful write.
"""
import json
import logging
from datetime import datetime
from typing import Any, Optional, Type, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from stepper.models.kv import KeyValueEntry
from stepper.models.state import VersionedBlob

logger = logging.getLogger(__name__)

BlobT = TypeVar("BlobT", bound=VersionedBlob)


class KeyValueStore:
    """JSON blobs keyed by string, stored in the KeyValueEntry table."""

    def __init__(self, engine):
        """
        Args:
            engine: SQLAlchemy engine (SQLModel create_engine result).
        """
        self.engine = engine

    def get_raw(self, key: str) -> Optional[Any]:
        """Return the decoded JSON value for key, or None if absent."""
        with Session(self.engine) as s:
            entry = s.get(KeyValueEntry, key)
            if entry is None:
                return None
            return json.loads(entry.value_json)

    def set_raw(self, key: str, value: Any) -> bool:
        """Encode value as JSON and upsert it. Returns False if the write failed."""
        try:
            payload = json.dumps(value)
            with Session(self.engine) as s:
                entry = s.get(KeyValueEntry, key)
                if entry is None:
                    entry = KeyValueEntry(key=key, value_json=payload)
                else:
                    entry.value_json = payload
                    entry.updated_at = datetime.now()
                s.add(entry)
                s.commit()
            return True
        except (SQLAlchemyError, TypeError) as exc:
            logger.warning("Failed to persist %r: %s", key, exc)
            return False

    def load(self, key: str, model: Type[BlobT]) -> Optional[BlobT]:
        """
        Load and migrate a typed blob.

        Returns None when the key is absent, unreadable or fails validation,
        so callers fall back to defaults.
        """
        try:
            raw = self.get_raw(key)
        except (SQLAlchemyError, ValueError) as exc:
            logger.warning("Failed to read %r: %s", key, exc)
            return None
        if raw is None:
            return None
        try:
            return model.from_stored(raw)
        except (ValidationError, ValueError, TypeError) as exc:
            logger.warning("Discarding unreadable %s blob %r: %s", model.__name__, key, exc)
            return None

    def save(self, key: str, blob: VersionedBlob) -> bool:
        """Persist a typed blob. Returns False if the write failed."""
        return self.set_raw(key, blob.model_dump(mode="json"))
