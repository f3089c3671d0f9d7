"""
Daily step goal with per-date history.

Each edit writes an entry effective from its date. The goal for any date is
the entry with the latest effective_date on or before it, so changing the
goal today never rewrites what past days were measured against.
"""
import logging
from datetime import date, datetime
from typing import Callable, Dict, Optional

from stepper.db.kv_store import KeyValueStore
from stepper.models.state import Goal, GoalHistory

logger = logging.getLogger(__name__)

GOAL_HISTORY_KEY = "goal_history"
DEFAULT_TARGET = 10000


class TargetStore:
    def __init__(
        self,
        store: KeyValueStore,
        now_fn: Callable[[], datetime] = datetime.now,
        default_target: int = DEFAULT_TARGET,
    ):
        self.store = store
        self._now = now_fn
        self.default_target = default_target
        self.history = store.load(GOAL_HISTORY_KEY, GoalHistory) or GoalHistory()

    @property
    def current_target(self) -> int:
        """Goal in effect today."""
        entry = self._latest_on_or_before(self._now().date())
        if entry is not None:
            return entry.value
        return self.history.current_target or self.default_target

    def save_target(self, value: int) -> Goal:
        """Set the goal from today onwards."""
        return self.save_target_for_date(value, self._now().date())

    def save_target_for_date(self, value: int, day: date) -> Goal:
        """
        Set the goal effective from `day`, replacing any entry for that date.

        Raises:
            ValueError: if value is not a positive step count.
        """
        if value <= 0:
            raise ValueError(f"Step goal must be positive, got {value}")
        goal = Goal(value=value, effective_date=day)
        self.history.entries = [e for e in self.history.entries if e.effective_date != day]
        self.history.entries.append(goal)
        self.history.entries.sort(key=lambda e: e.effective_date)
        if day == self._now().date():
            self.history.current_target = value
        self.store.save(GOAL_HISTORY_KEY, self.history)
        logger.info("Step goal set to %d from %s", value, day.isoformat())
        return goal

    def target_for_date(self, day: date) -> int:
        entry = self._latest_on_or_before(day)
        return entry.value if entry is not None else self.default_target

    def has_specific_target(self, day: date) -> bool:
        return any(e.effective_date == day for e in self.history.entries)

    def all_targets(self) -> Dict[date, int]:
        return {e.effective_date: e.value for e in self.history.entries}

    def _latest_on_or_before(self, day: date) -> Optional[Goal]:
        candidates = [e for e in self.history.entries if e.effective_date <= day]
        if not candidates:
            return None
        return max(candidates, key=lambda e: e.effective_date)
