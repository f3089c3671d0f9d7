"""
Notification history: every reminder that went out, with day and hour indices
for the insights screens.

The log is append-only and pruned to a rolling retention window (35 days by
default) on load and on every save, so it stays small without a separate
cleanup job.
"""
import logging
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple, Union

from stepper.db.kv_store import KeyValueStore
from stepper.models.state import NotificationKind, NotificationLog, NotificationRecord

logger = logging.getLogger(__name__)

HISTORY_KEY = "notification_history"
DEFAULT_RETENTION_DAYS = 35


def _as_date(day: Union[date, datetime]) -> date:
    return day.date() if isinstance(day, datetime) else day


class NotificationHistory:
    def __init__(
        self,
        store: KeyValueStore,
        now_fn: Callable[[], datetime] = datetime.now,
        retention_days: int = DEFAULT_RETENTION_DAYS,
    ):
        self.store = store
        self._now = now_fn
        self.retention = timedelta(days=retention_days)

        log = store.load(HISTORY_KEY, NotificationLog) or NotificationLog()
        self._records: List[NotificationRecord] = list(log.records)
        self._by_day: Counter = Counter()
        self._by_day_hour: Counter = Counter()
        self._by_hour: Counter = Counter()
        self.prune()

    @property
    def records(self) -> List[NotificationRecord]:
        return list(self._records)

    def record(self, kind: NotificationKind, at: Optional[datetime] = None) -> NotificationRecord:
        """Append a record (timestamp defaults to now) and persist."""
        rec = NotificationRecord(timestamp=at or self._now(), kind=kind)
        self._records.append(rec)
        self._index(rec)
        self.save()
        return rec

    def prune(self, now: Optional[datetime] = None) -> int:
        """Drop records older than the retention window. Returns how many went."""
        cutoff = (now or self._now()) - self.retention
        kept = [r for r in self._records if r.timestamp >= cutoff]
        removed = len(self._records) - len(kept)
        self._records = sorted(kept, key=lambda r: r.timestamp)
        self._rebuild_index()
        if removed:
            logger.debug("Pruned %d notification records older than %s", removed, cutoff.date())
        return removed

    def save(self) -> bool:
        self.prune()
        return self.store.save(HISTORY_KEY, NotificationLog(records=self._records))

    # ─── Queries ──────────────────────────────────────────────────────────────

    def count_for_day(self, day: Union[date, datetime]) -> int:
        return self._by_day[_as_date(day)]

    def count_for_hour(self, day: Union[date, datetime], hour: int) -> int:
        if not 0 <= hour <= 23:
            raise ValueError(f"hour must be 0-23, got {hour}")
        return self._by_day_hour[(_as_date(day), hour)]

    def most_active_notification_hour(self) -> Optional[int]:
        """Hour of day with the most reminders across all days; ties → earliest hour."""
        if not self._records:
            return None
        return max(range(24), key=lambda h: (self._by_hour[h], -h))

    def average_per_hour(self) -> Dict[int, float]:
        """Average reminders per day for each hour, over days that had any reminder."""
        day_count = max(len(self._by_day), 1)
        return {hour: self._by_hour[hour] / day_count for hour in range(24)}

    def daily_counts(self, days: int = 7, today: Optional[date] = None) -> List[Tuple[date, int]]:
        """(day, count) pairs for the last `days` days, oldest first."""
        today = today or self._now().date()
        return [
            (day, self._by_day[day])
            for day in (today - timedelta(days=offset) for offset in range(days - 1, -1, -1))
        ]

    def reminder_free_streak(self, today: Optional[date] = None) -> int:
        """Consecutive days up to and including today without a reminder."""
        today = today or self._now().date()
        streak = 0
        while streak < self.retention.days and self._by_day[today - timedelta(days=streak)] == 0:
            streak += 1
        return streak

    # ─── Internal helpers ─────────────────────────────────────────────────────

    def _index(self, rec: NotificationRecord) -> None:
        day = rec.timestamp.date()
        self._by_day[day] += 1
        self._by_day_hour[(day, rec.timestamp.hour)] += 1
        self._by_hour[rec.timestamp.hour] += 1

    def _rebuild_index(self) -> None:
        self._by_day.clear()
        self._by_day_hour.clear()
        self._by_hour.clear()
        for rec in self._records:
            self._index(rec)
