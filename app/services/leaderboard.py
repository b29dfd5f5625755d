"""
Leaderboard snapshots: computed from user stats, cached, regenerated when stale.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.core.progress.schemas import UserStats
from app.models.activity import LeaderboardSnapshot
from app.models.daily_problem import DailyProblemAttempt
from app.models.user import User
from app.schemas.leaderboard import LeaderboardResponse, MyRankResponse, RankingEntry

logger = logging.getLogger(__name__)

ALL_TIME = "all-time"
DAILY_PRACTICE = "daily-practice"

SCORERS: Dict[str, Callable[[UserStats], int]] = {
    ALL_TIME: lambda stats: stats.rank.points,
    DAILY_PRACTICE: lambda stats: stats.daily_problem_points,
}


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LeaderboardService:
    """Builds and serves ranking snapshots."""

    def __init__(self, db: Session):
        self.db = db

    def _snapshot(self, board_type: str) -> Optional[LeaderboardSnapshot]:
        return self.db.query(LeaderboardSnapshot).filter(LeaderboardSnapshot.type == board_type).first()

    def _is_stale(self, snapshot: Optional[LeaderboardSnapshot], now: datetime) -> bool:
        if snapshot is None or snapshot.last_updated is None:
            return True
        max_age = timedelta(minutes=settings.LEADERBOARD_MAX_AGE_MINUTES)
        return now - _as_utc(snapshot.last_updated) > max_age

    def _practice_counts(self) -> Dict[int, Dict[str, int]]:
        rows = (
            self.db.query(DailyProblemAttempt.user_id, func.count(DailyProblemAttempt.id))
            .group_by(DailyProblemAttempt.user_id)
            .all()
        )
        counts = {user_id: {"attempted": attempted, "solved": 0} for user_id, attempted in rows}
        solved_rows = (
            self.db.query(DailyProblemAttempt.user_id, func.count(DailyProblemAttempt.id))
            .filter(DailyProblemAttempt.passed.is_(True))
            .group_by(DailyProblemAttempt.user_id)
            .all()
        )
        for user_id, solved in solved_rows:
            counts.setdefault(user_id, {"attempted": 0, "solved": 0})["solved"] = solved
        return counts

    def regenerate(self, board_type: str) -> LeaderboardSnapshot:
        """
        Rebuild the snapshot for ``board_type`` from current user stats.

        Raises:
            ValidationError: If the leaderboard type is unknown
        """
        scorer = SCORERS.get(board_type)
        if scorer is None:
            raise ValidationError(f"Unknown leaderboard type: {board_type}")

        practice = self._practice_counts() if board_type == DAILY_PRACTICE else {}
        scored = []
        for user in self.db.query(User).filter(User.is_active.is_(True)).all():
            stats = UserStats.from_raw(user.stats)
            score = scorer(stats)
            if board_type == DAILY_PRACTICE:
                metrics = practice.get(user.id, {"attempted": 0, "solved": 0})
            else:
                metrics = {
                    "algorithms_completed": stats.algorithms_completed,
                    "average_accuracy": stats.average_accuracy,
                    "time_spent": stats.time_spent.total,
                    "streak": stats.streak.current,
                }
            scored.append((score, user, stats, metrics))

        scored.sort(key=lambda item: (-item[0], item[1].id))
        rankings: List[Dict[str, Any]] = [
            RankingEntry(
                position=position,
                user_id=user.id,
                username=user.username,
                rank=stats.rank.level,
                score=score,
                metrics=metrics,
            ).model_dump()
            for position, (score, user, stats, metrics) in enumerate(scored[: settings.LEADERBOARD_SIZE], start=1)
        ]

        snapshot = self._snapshot(board_type)
        if snapshot is None:
            snapshot = LeaderboardSnapshot(type=board_type)
            self.db.add(snapshot)
        snapshot.rankings = rankings
        snapshot.last_updated = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(snapshot)
        logger.info(f"Regenerated {board_type} leaderboard with {len(rankings)} entries")
        return snapshot

    def get_snapshot(self, board_type: str, now: Optional[datetime] = None) -> LeaderboardSnapshot:
        snapshot = self._snapshot(board_type)
        if self._is_stale(snapshot, now or datetime.now(timezone.utc)):
            snapshot = self.regenerate(board_type)
        return snapshot

    def get_leaderboard(self, board_type: str, limit: int = 50) -> LeaderboardResponse:
        snapshot = self.get_snapshot(board_type)
        return LeaderboardResponse(
            type=board_type,
            rankings=[RankingEntry.model_validate(entry) for entry in (snapshot.rankings or [])[:limit]],
            last_updated=snapshot.last_updated,
        )

    def my_rank(self, user: User) -> MyRankResponse:
        stats = UserStats.from_raw(user.stats)
        snapshot = self.get_snapshot(ALL_TIME)
        position: Any = "Unranked"
        for entry in snapshot.rankings or []:
            if entry.get("user_id") == user.id:
                position = entry.get("position")
                break
        return MyRankResponse(
            level=stats.rank.level,
            points=stats.rank.points,
            daily_problem_points=stats.daily_problem_points,
            position=position,
        )
