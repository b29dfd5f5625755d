"""
Derived statistics for a user's progress.

Everything here is recomputed from the progress store; nothing is trusted from
client input. Recalculation is idempotent so callers may run it defensively.
"""
import logging
from datetime import date
from typing import List, Tuple

from app.core.progress.schemas import (
    LearningPath,
    ProgressStatus,
    ProgressStore,
    UserStats,
    js_round,
)

logger = logging.getLogger(__name__)

# Highest threshold first
RANK_THRESHOLDS: List[Tuple[str, int]] = [
    ("Diamond", 10000),
    ("Platinum", 5000),
    ("Gold", 2000),
    ("Silver", 500),
    ("Bronze", 0),
]


def rank_level_for(points: int) -> str:
    """Map rank points to a level name."""
    for level, threshold in RANK_THRESHOLDS:
        if points >= threshold:
            return level
    return "Bronze"


class StatsRecalculator:
    """Recomputes completion, topic status transitions and aggregate stats."""

    def recalculate(self, store: ProgressStore, stats: UserStats, learning_path: LearningPath) -> UserStats:
        """
        Recompute all derived fields in place.

        Args:
            store: The user's progress store
            stats: The user's stats, updated in place
            learning_path: The user's learning path, ``completed_topics`` may grow

        Returns:
            The updated stats
        """
        total_completed = 0
        accuracy_sum = 0.0
        practiced_count = 0
        completion_sum = 0
        active_topics = 0

        for topic_id, entry in store.items():
            algorithms = entry.algorithms or {}
            if not algorithms:
                entry.completion = 0
                continue

            active_topics += 1
            topic_completed = 0
            for algo in algorithms.values():
                if algo.completed:
                    topic_completed += 1
                if (algo.attempts_practice or 0) > 0:
                    accuracy_sum += algo.accuracy_practice or 0
                    practiced_count += 1

            total_completed += topic_completed
            entry.completion = js_round(100 * topic_completed / len(algorithms))
            completion_sum += entry.completion

            if entry.status is None or entry.status == ProgressStatus.LOCKED:
                continue
            if entry.completion == 100:
                if entry.status != ProgressStatus.COMPLETED:
                    logger.info(f"Topic {topic_id} completed")
                entry.status = ProgressStatus.COMPLETED
                if topic_id not in learning_path.completed_topics:
                    learning_path.completed_topics.append(topic_id)
            elif entry.completion > 0 and entry.status == ProgressStatus.AVAILABLE:
                entry.status = ProgressStatus.IN_PROGRESS

        stats.algorithms_completed = total_completed
        stats.overall_progress = js_round(completion_sum / active_topics) if active_topics else 0
        stats.average_accuracy = js_round(accuracy_sum / practiced_count) if practiced_count else 0
        self.update_rank(stats)
        return stats

    @staticmethod
    def update_rank(stats: UserStats) -> bool:
        """Set ``rank.level`` from ``rank.points``. Returns True if the level changed."""
        new_level = rank_level_for(stats.rank.points or 0)
        if stats.rank.level != new_level:
            logger.info(f"Rank changed: {stats.rank.level} -> {new_level}")
            stats.rank.level = new_level
            return True
        return False

    @staticmethod
    def add_rank_points(stats: UserStats, points: int) -> None:
        """Accumulate rank points; negative amounts are ignored."""
        if points > 0:
            stats.rank.points = (stats.rank.points or 0) + points

    @staticmethod
    def record_activity(stats: UserStats, minutes: int, minutes_today: int, today: date) -> None:
        """
        Update time totals and the daily streak for activity on ``today``.

        Args:
            stats: The user's stats, updated in place
            minutes: Minutes added by this activity
            minutes_today: Total minutes recorded for today, including ``minutes``
            today: The activity date
        """
        stats.time_spent.today = minutes_today
        stats.time_spent.total = (stats.time_spent.total or 0) + minutes

        streak = stats.streak
        last_active = streak.last_active_date
        days_since = (today - last_active).days if last_active is not None else None
        if days_since is not None and days_since <= 0:
            return
        if days_since == 1:
            streak.current = (streak.current or 0) + 1
        else:
            streak.current = 1
        streak.last_active_date = today
        if streak.current > (streak.longest or 0):
            streak.longest = streak.current
