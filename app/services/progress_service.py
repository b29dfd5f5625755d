"""
Progress orchestration: load the user aggregate, gate, mutate, recompute, persist.
"""
import logging
from datetime import date, datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from app.core.config import settings
from app.core.exceptions import AccessDeniedError, ConflictError, NotFoundError
from app.core.progress.access_resolver import AccessResolver, default_algorithm_status, default_topic_status
from app.core.progress.recorder import apply_progress_delta, minutes_from_seconds
from app.core.progress.schemas import (
    AccessVerdict,
    DeltaOutcome,
    LearningPath,
    ProgressDelta,
    ProgressStatus,
    ProgressStore,
    TopicDefinition,
    UserStats,
)
from app.core.progress.stats import StatsRecalculator
from app.core.progress.unlock import UnlockAdvancer
from app.models.activity import DailyActivity
from app.models.topic import Topic
from app.models.user import User
from app.schemas.progress import (
    AlgorithmView,
    DashboardResponse,
    DashboardStats,
    ProgressUpdateResponse,
    TopicView,
)
from app.schemas.topic import TopicStatusRow
from app.services.catalog import TopicCatalog, to_definition

logger = logging.getLogger(__name__)

Aggregate = Tuple[ProgressStore, UserStats, LearningPath]


class ProgressService:
    """Runs every progress mutation path against one user aggregate."""

    def __init__(self, db: Session, catalog: Optional[TopicCatalog] = None):
        self.db = db
        self.catalog = catalog or TopicCatalog(db)
        self.resolver = AccessResolver()
        self.recalculator = StatsRecalculator()
        self.advancer = UnlockAdvancer()

    # ============= Aggregate persistence =============

    @staticmethod
    def load_aggregate(user: User) -> Aggregate:
        return (
            ProgressStore.from_raw(user.progress),
            UserStats.from_raw(user.stats),
            LearningPath.from_raw(user.learning_path),
        )

    def recompute(self, aggregate: Aggregate) -> None:
        store, stats, path = aggregate
        self.recalculator.recalculate(store, stats, path)

    def save_aggregate(self, user: User, aggregate: Aggregate) -> None:
        """
        Write the aggregate back and commit.

        The user row carries a version counter; a concurrent write in between
        load and save makes the commit fail instead of silently losing data.

        Raises:
            ConflictError: If the user row was modified concurrently
        """
        store, stats, path = aggregate
        user.progress = store.to_raw()
        user.stats = stats.model_dump(mode="json")
        user.learning_path = path.model_dump(mode="json")
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            logger.warning(f"Concurrent update detected for user {user.id}")
            raise ConflictError("Progress was updated concurrently, please retry.")
        self.db.refresh(user)

    def _sync(self, aggregate: Aggregate, topics: Optional[List[TopicDefinition]] = None) -> bool:
        if not settings.SYNC_TOPIC_ORDER:
            return False
        store, _, path = aggregate
        if topics is None:
            topics = self.catalog.get_active_topics()
        return self.advancer.sync_topic_order(store, path, topics)

    def get_user(self, user_id: int) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise NotFoundError("User not found")
        return user

    # ============= Account setup =============

    def initialize_user(self, user: User) -> None:
        """
        Seed a new account's progress from the active catalog.

        Does not commit; the caller persists the new user.
        """
        store, stats, path = ProgressStore(), UserStats(), LearningPath()
        self.advancer.initialize(store, path, self.catalog.get_active_topics())
        user.progress = store.to_raw()
        user.stats = stats.model_dump(mode="json")
        user.learning_path = path.model_dump(mode="json")

    # ============= Access =============

    def check_access(self, user: User, topic_id: str, algorithm_id: str) -> AccessVerdict:
        """
        Resolve access for ``(topic, algorithm)``.

        Raises:
            NotFoundError: If the topic or algorithm is not defined
        """
        store = ProgressStore.from_raw(user.progress)
        path = LearningPath.from_raw(user.learning_path)
        topic_def = self.catalog.get_topic(topic_id)
        return self.resolver.check_access(topic_def, algorithm_id, store.get(topic_id), path.completed_topics)

    # ============= Progress updates =============

    def _record_activity(
        self, user: User, stats: UserStats, topic_id: str, outcome: DeltaOutcome, today: date
    ) -> int:
        minutes = minutes_from_seconds(outcome.time_increment_seconds)
        activity = (
            self.db.query(DailyActivity)
            .filter(DailyActivity.user_id == user.id, DailyActivity.activity_date == today)
            .first()
        )
        if activity is None:
            activity = DailyActivity(
                user_id=user.id,
                activity_date=today,
                time_spent=0,
                algorithms_attempted=0,
                algorithms_completed=0,
                points_earned=0,
                topics_studied=[],
            )
            self.db.add(activity)

        if minutes > 0:
            activity.time_spent = (activity.time_spent or 0) + minutes
            activity.algorithms_attempted = (activity.algorithms_attempted or 0) + (1 if outcome.attempted_practice else 0)
            activity.algorithms_completed = (activity.algorithms_completed or 0) + (1 if outcome.completed_now else 0)
            activity.points_earned = (activity.points_earned or 0) + outcome.points_earned
            studied = list(activity.topics_studied or [])
            if topic_id not in studied:
                studied.append(topic_id)
                activity.topics_studied = studied

        self.recalculator.record_activity(stats, minutes, activity.time_spent or 0, today)
        return minutes

    def record_progress(
        self,
        user: User,
        topic_id: str,
        algorithm_id: str,
        delta: ProgressDelta,
        today: Optional[date] = None,
    ) -> ProgressUpdateResponse:
        """
        Apply a progress report for one algorithm.

        Args:
            user: The reporting user
            topic_id: Topic id
            algorithm_id: Algorithm id within the topic
            delta: Reported values
            today: Activity date, defaults to the current UTC date

        Returns:
            ProgressUpdateResponse with the recomputed stats and topic state

        Raises:
            NotFoundError: Unknown topic or algorithm
            AccessDeniedError: Topic or algorithm is locked for this user
            ConflictError: Concurrent update of the same user
        """
        topic_def = self.catalog.get_topic(topic_id)
        aggregate = self.load_aggregate(user)
        store, stats, path = aggregate

        verdict = self.resolver.check_access(topic_def, algorithm_id, store.get(topic_id), path.completed_topics)
        if not verdict.has_access:
            raise AccessDeniedError(f"Access denied: {verdict.status}", blocker=verdict.blocker)

        topics = self.catalog.get_active_topics()
        self._sync(aggregate, topics)

        now = datetime.now(timezone.utc)
        today = today or now.date()
        entry = store.ensure_topic(topic_id, topic_def.initial_status)
        algo_progress = store.ensure_algorithm(topic_id, algorithm_id)
        outcome = apply_progress_delta(algo_progress, delta, now)
        entry.total_time = (entry.total_time or 0) + outcome.time_increment_seconds

        if outcome.touched:
            self._record_activity(user, stats, topic_id, outcome, today)

        if outcome.points_earned > 0:
            self.recalculator.add_rank_points(stats, outcome.points_earned)

        self.recompute(aggregate)
        if outcome.completed_now:
            logger.info(f"Algorithm {topic_id}.{algorithm_id} completed, checking unlocks")
            catalog_map = {topic.id: topic for topic in topics}
            if self.advancer.unlock_next_topic(store, path, catalog_map):
                self.recompute(aggregate)

        self.save_aggregate(user, aggregate)
        logger.info(f"User {user.id} progress saved for {topic_id}.{algorithm_id}")

        store, stats, path = self.load_aggregate(user)
        topic_entry = store.get(topic_id)
        return ProgressUpdateResponse(
            updated_algorithm_progress=topic_entry.algorithms[algorithm_id],
            updated_stats=stats,
            updated_topic_status=default_topic_status(topic_def, topic_entry),
            updated_topic_completion=topic_entry.completion,
            updated_learning_path=path,
        )

    # ============= Dashboard =============

    def dashboard(self, user: User) -> DashboardResponse:
        """Topics with effective statuses, stats and learning path for the UI."""
        topics = self.catalog.get_active_topics()
        aggregate = self.load_aggregate(user)
        if self._sync(aggregate, topics):
            self.recompute(aggregate)
            self.save_aggregate(user, aggregate)
        store, stats, path = aggregate

        views = []
        total_algorithms = 0
        for topic in topics:
            entry = store.get(topic.id)
            topic_status = self.resolver.effective_topic_status(topic, entry, path.completed_topics)
            algorithms = []
            for algo in topic.algorithms:
                total_algorithms += 1
                algo_progress = entry.algorithms.get(algo.id) if entry else None
                algorithms.append(
                    AlgorithmView(
                        id=algo.id,
                        name=algo.name,
                        points=algo.points,
                        difficulty=algo.difficulty,
                        is_globally_locked=algo.is_globally_locked,
                        effective_status=self.resolver.effective_algorithm_status(algo, algo_progress, topic_status),
                        progress=algo_progress,
                    )
                )
            views.append(
                TopicView(
                    id=topic.id,
                    name=topic.name,
                    order=topic.order,
                    prerequisites=topic.prerequisites,
                    status=topic_status,
                    completion=entry.completion if entry else 0,
                    algorithms=algorithms,
                )
            )

        return DashboardResponse(
            username=str(user.username),
            stats=DashboardStats(
                overall_progress=stats.overall_progress,
                algorithms_completed=stats.algorithms_completed,
                total_algorithms=total_algorithms,
                time_today=stats.time_spent.today,
                time_total=stats.time_spent.total,
                current_streak=stats.streak.current,
                longest_streak=stats.streak.longest,
                rank={"level": stats.rank.level, "points": stats.rank.points},
                daily_problem_points=stats.daily_problem_points,
                average_accuracy=stats.average_accuracy,
            ),
            topics=views,
            learning_path=path,
        )

    # ============= Admin overrides =============

    def set_user_topic_status(self, user_id: int, topic_id: str, locked: bool) -> str:
        """Lock or unlock a topic for a single user. Returns a status message."""
        user = self.get_user(user_id)
        topic_def = self.catalog.get_topic(topic_id)
        if topic_def is None:
            raise NotFoundError("Topic not found")

        aggregate = self.load_aggregate(user)
        store = aggregate[0]
        if locked:
            store.ensure_topic(topic_id, ProgressStatus.LOCKED).status = ProgressStatus.LOCKED
            message = f'Topic "{topic_def.name}" locked for user "{user.username}".'
        else:
            current = default_topic_status(topic_def, store.get(topic_id))
            if current != ProgressStatus.LOCKED:
                return f'Topic "{topic_def.name}" is already accessible to user "{user.username}".'
            store.ensure_topic(topic_id, ProgressStatus.AVAILABLE).status = ProgressStatus.AVAILABLE
            message = f'Topic "{topic_def.name}" unlocked for user "{user.username}".'

        self.recompute(aggregate)
        self.save_aggregate(user, aggregate)
        logger.info(message)
        return message

    def set_user_algorithm_status(self, user_id: int, topic_id: str, algorithm_id: str, locked: bool) -> str:
        """Lock or unlock an algorithm for a single user. Returns a status message."""
        user = self.get_user(user_id)
        topic_def = self.catalog.get_topic(topic_id)
        if topic_def is None:
            raise NotFoundError("Topic not found")
        algo_def = topic_def.find_algorithm(algorithm_id)
        if algo_def is None:
            raise NotFoundError(f"Algorithm '{algorithm_id}' not found in topic '{topic_def.name}'")

        aggregate = self.load_aggregate(user)
        store = aggregate[0]
        if locked:
            store.ensure_topic(topic_id, topic_def.initial_status)
            store.ensure_algorithm(topic_id, algorithm_id).status = ProgressStatus.LOCKED
            message = f'Algorithm "{algo_def.name}" locked for user "{user.username}".'
        else:
            algo_progress = store.get_algorithm(topic_id, algorithm_id)
            if default_algorithm_status(algo_progress) != ProgressStatus.LOCKED:
                return f'Algorithm "{algo_def.name}" was not specifically locked for user "{user.username}".'
            algo_progress.status = ProgressStatus.AVAILABLE
            message = f'Algorithm "{algo_def.name}" unlocked for user "{user.username}".'

        self.recompute(aggregate)
        self.save_aggregate(user, aggregate)
        logger.info(message)
        return message

    def lock_topic_globally(self, topic_id: str) -> Tuple[Topic, int]:
        """
        Lock a topic globally and set every existing user entry for it to locked.

        Both changes go out in one commit, so a later global unlock does not
        silently re-open the topic for everyone. Returns the topic and the
        number of users changed.

        Raises:
            NotFoundError: Unknown topic
            ConflictError: A user row changed concurrently; nothing is saved
        """
        topic = self.catalog.get_topic_model(topic_id)
        topic.is_globally_locked = True
        changed = 0
        for user in self.db.query(User).all():
            store = ProgressStore.from_raw(user.progress)
            entry = store.get(topic_id)
            if entry is None or entry.status == ProgressStatus.LOCKED:
                continue
            entry.status = ProgressStatus.LOCKED
            user.progress = store.to_raw()
            changed += 1
        try:
            self.db.commit()
        except StaleDataError:
            self.db.rollback()
            raise ConflictError("Users were updated concurrently, please retry.")
        logger.info(f"Topic {topic_id} globally locked, set to 'locked' for {changed} users")
        return topic, changed

    def topic_statuses_for_user(self, user_id: int) -> Tuple[User, List[TopicStatusRow]]:
        """Effective status of every catalog topic for one user (admin view)."""
        user = self.get_user(user_id)
        store = ProgressStore.from_raw(user.progress)
        rows = []
        for topic in self.catalog.list_all():
            topic_def = to_definition(topic)
            entry = store.get(topic_def.id)
            rows.append(
                TopicStatusRow(
                    id=topic_def.id,
                    name=topic_def.name,
                    effective_status=self.resolver.effective_topic_status(topic_def, entry),
                    status_text=self.resolver.describe_topic_status(topic_def, entry),
                    is_globally_locked=topic_def.is_globally_locked,
                    is_user_locked=default_topic_status(topic_def, entry) == ProgressStatus.LOCKED,
                )
            )
        return user, rows
