"""Goal achievement tracking: once-a-day celebration, streaks, recent count."""
import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from stepper.db.kv_store import KeyValueStore
from stepper.models.state import AchievementLog

logger = logging.getLogger(__name__)

ACHIEVEMENTS_KEY = "goal_achievements"
RETENTION_DAYS = 365


class GoalAchievementTracker:
    def __init__(
        self,
        store: KeyValueStore,
        now_fn: Callable[[], datetime] = datetime.now,
        retention_days: int = RETENTION_DAYS,
    ):
        self.store = store
        self._now = now_fn
        self.retention = timedelta(days=retention_days)
        self.log = store.load(ACHIEVEMENTS_KEY, AchievementLog) or AchievementLog()

    def check_for_goal_achievement(self, current_steps: int, target_steps: int) -> bool:
        """
        Record today's achievement the first time the goal is met.

        Returns:
            True only on the first call each day where steps >= target,
            i.e. when a celebration should be shown.
        """
        if current_steps < target_steps:
            return False
        today = self._now().date()
        if self.log.last_celebration == today:
            return False

        cutoff = today - self.retention
        dates = {d for d in self.log.achievement_dates if d >= cutoff}
        dates.add(today)
        self.log.achievement_dates = sorted(dates)
        self.log.last_celebration = today
        self.store.save(ACHIEVEMENTS_KEY, self.log)
        logger.info("🎉 Goal reached: %d steps (target %d)", current_steps, target_steps)
        return True

    def current_streak(self, today: Optional[date] = None) -> int:
        """Consecutive achievement days ending today."""
        today = today or self._now().date()
        achieved = set(self.log.achievement_dates)
        streak = 0
        while today - timedelta(days=streak) in achieved:
            streak += 1
        return streak

    def recent_achievements(self, days: int = 30, today: Optional[date] = None) -> int:
        today = today or self._now().date()
        cutoff = today - timedelta(days=days)
        return sum(1 for d in self.log.achievement_dates if d >= cutoff)
