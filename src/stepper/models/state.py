"""
Typed blobs persisted to the key-value store.

Each blob carries a schema_version. from_stored() walks the migration chain
from the stored version up to CURRENT_VERSION before validating, so layouts
written by older builds keep loading after fields are renamed.

Blobs written without a schema_version are treated as version 1.
"""
import enum
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, Field

# Legacy blobs encoded dates as seconds since 2001-01-01 UTC
_REFERENCE_EPOCH_OFFSET = 978307200


class NotificationKind(str, enum.Enum):
    INACTIVITY = "inactivity"
    REPEATED_INACTIVITY = "repeated_inactivity"
    BEDTIME = "bedtime"


class VersionedBlob(BaseModel):
    """Base for every persisted blob. Subclasses bump CURRENT_VERSION and register a migration."""

    CURRENT_VERSION: ClassVar[int] = 1
    MIGRATIONS: ClassVar[Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]]] = {}

    schema_version: int = 1

    @classmethod
    def from_stored(cls, data: Dict[str, Any]):
        """
        Migrate a decoded JSON dict to the current layout and validate it.

        Raises:
            ValueError: if the stored version is newer than this build
                understands or a migration step is missing.
            pydantic.ValidationError: if the migrated data is invalid.
        """
        data = dict(data)
        version = int(data.get("schema_version", 1))
        if version > cls.CURRENT_VERSION:
            raise ValueError(
                f"{cls.__name__} schema v{version} is newer than supported v{cls.CURRENT_VERSION}"
            )
        while version < cls.CURRENT_VERSION:
            migrate = cls.MIGRATIONS.get(version)
            if migrate is None:
                raise ValueError(f"No migration for {cls.__name__} v{version}")
            data = migrate(data)
            version += 1
        data["schema_version"] = version
        return cls.model_validate(data)


# ─── Notification settings ────────────────────────────────────────────────────

class TimeRange(BaseModel):
    """A time-of-day window. start > end means the window spans midnight."""

    start: time
    end: time


def _legacy_clock(value: Union[str, float, int, None], fallback: str) -> str:
    """Extract HH:MM from a legacy full-date value (ISO string or reference-epoch seconds)."""
    if value is None or value == "":
        return fallback
    if isinstance(value, (int, float)):
        moment = datetime.fromtimestamp(value + _REFERENCE_EPOCH_OFFSET)
    else:
        moment = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        if moment.tzinfo is not None:
            moment = moment.astimezone()
    return moment.time().replace(second=0, microsecond=0).isoformat(timespec="minutes")


def _settings_v1_to_v2(data: Dict[str, Any]) -> Dict[str, Any]:
    """v1 used camelCase keys, split bedtime offset hours/minutes and seconds for inactivity."""
    return {
        "bedtime_enabled": data.get("bedtimeNotificationEnabled", False),
        "bedtime": _legacy_clock(data.get("customBedtime"), "22:30"),
        "lead_time_minutes": int(data.get("bedtimeHours", 2)) * 60
        + int(data.get("bedtimeMinutes", 0)),
        "inactivity_enabled": data.get("inactivityNotificationEnabled", False),
        "inactivity_minutes": max(int(data.get("inactivityDuration", 1800)) // 60, 1),
        "active_hours": [
            {
                "start": _legacy_clock(r.get("startTime"), "09:00"),
                "end": _legacy_clock(r.get("endTime"), "17:00"),
            }
            for r in data.get("whitelistTimeIntervals", [])
        ],
    }


class NotificationSettings(VersionedBlob):
    CURRENT_VERSION: ClassVar[int] = 2
    MIGRATIONS: ClassVar[Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]]] = {
        1: _settings_v1_to_v2,
    }

    schema_version: int = 2

    # Bedtime reminder
    bedtime_enabled: bool = False
    bedtime: time = time(22, 30)
    lead_time_minutes: int = Field(default=120, ge=0)

    # Inactivity reminder
    inactivity_enabled: bool = False
    inactivity_minutes: int = Field(default=30, gt=0)
    active_hours: List[TimeRange] = Field(default_factory=list)

    @property
    def inactivity_threshold(self) -> timedelta:
        return timedelta(minutes=self.inactivity_minutes)

    @property
    def lead_time(self) -> timedelta:
        return timedelta(minutes=self.lead_time_minutes)


# ─── Activity state ───────────────────────────────────────────────────────────

class ActivityState(VersionedBlob):
    """Last observed movement. Only real step increases move last_activity_time."""

    last_step_count: int = 0
    last_activity_time: datetime = Field(default_factory=datetime.now)
    last_notification_time: Optional[datetime] = None  # None = never sent
    step_date: Optional[date] = None  # day last_step_count was counted on


# ─── Goals ────────────────────────────────────────────────────────────────────

class Goal(BaseModel):
    value: int = Field(gt=0)
    effective_date: date


def _goal_history_v1_to_v2(data: Dict[str, Any]) -> Dict[str, Any]:
    """v1 was a flat {"YYYY-MM-DD": steps} mapping."""
    entries = [
        {"value": value, "effective_date": key}
        for key, value in data.items()
        if key != "schema_version"
    ]
    return {"entries": entries}


class GoalHistory(VersionedBlob):
    CURRENT_VERSION: ClassVar[int] = 2
    MIGRATIONS: ClassVar[Dict[int, Callable[[Dict[str, Any]], Dict[str, Any]]]] = {
        1: _goal_history_v1_to_v2,
    }

    schema_version: int = 2
    current_target: Optional[int] = Field(default=None, gt=0)
    entries: List[Goal] = Field(default_factory=list)


class AchievementLog(VersionedBlob):
    achievement_dates: List[date] = Field(default_factory=list)
    last_celebration: Optional[date] = None


# ─── Notification history ─────────────────────────────────────────────────────

class NotificationRecord(BaseModel):
    timestamp: datetime
    kind: NotificationKind


class NotificationLog(VersionedBlob):
    records: List[NotificationRecord] = Field(default_factory=list)
