"""
Pydantic schemas for the progress engine.

The user aggregate is stored as JSON (progress map, stats, learning path); these
models are the typed view the engine works on. ``ProgressStore`` wraps the
topic -> entry mapping with explicit default construction on first access.
"""
import math
from datetime import date, datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, Field


class ProgressStatus:
    """Status values used by topics and algorithms."""

    LOCKED = "locked"
    AVAILABLE = "available"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"

    TOPIC_VALUES = (LOCKED, AVAILABLE, IN_PROGRESS, COMPLETED)
    ALGORITHM_VALUES = (LOCKED, AVAILABLE, COMPLETED)


def js_round(value: float) -> int:
    """Round half up (0.5 -> 1, 2.5 -> 3), unlike Python's banker's rounding."""
    return int(math.floor(value + 0.5))


def _as_number(value: Any, default: float = 0) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)) and not math.isnan(value):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return default if math.isnan(number) else number


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


# ============= Catalog =============

class AlgorithmDefinition(BaseModel):
    """Catalog entry for one algorithm inside a topic."""

    id: str
    name: str = ""
    points: int = 0
    difficulty: Optional[str] = None
    is_globally_locked: bool = False


class TopicDefinition(BaseModel):
    """Catalog entry for a topic."""

    id: str
    name: str = ""
    subject: str = ""
    order: int = 0
    prerequisites: List[str] = Field(default_factory=list)
    is_globally_locked: bool = False
    algorithms: List[AlgorithmDefinition] = Field(default_factory=list)

    def find_algorithm(self, algorithm_id: str) -> Optional[AlgorithmDefinition]:
        for algorithm in self.algorithms:
            if algorithm.id == algorithm_id:
                return algorithm
        return None

    @property
    def initial_status(self) -> str:
        return ProgressStatus.LOCKED if self.is_globally_locked else ProgressStatus.AVAILABLE


# ============= Progress store =============

class AlgorithmProgress(BaseModel):
    """Per-user progress on a single algorithm."""

    status: str = ProgressStatus.AVAILABLE
    completed: bool = False
    time_spent_viz: float = 0
    last_attempt_viz: Optional[datetime] = None
    accuracy_practice: float = 0
    time_spent_practice: float = 0
    best_time_practice: Optional[float] = None
    attempts_practice: int = 0
    points_practice: int = 0
    last_attempt_practice: Optional[datetime] = None
    notes: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "AlgorithmProgress":
        """Build from stored JSON, replacing anything malformed with defaults."""
        if not isinstance(raw, dict):
            return cls()
        status = raw.get("status")
        best_time = raw.get("best_time_practice")
        accuracy = _as_number(raw.get("accuracy_practice"))
        return cls(
            status=status if status in ProgressStatus.ALGORITHM_VALUES else ProgressStatus.AVAILABLE,
            completed=raw.get("completed") is True,
            time_spent_viz=_as_number(raw.get("time_spent_viz")),
            last_attempt_viz=_as_datetime(raw.get("last_attempt_viz")),
            accuracy_practice=min(max(accuracy, 0), 100),
            time_spent_practice=_as_number(raw.get("time_spent_practice")),
            best_time_practice=_as_number(best_time, None) if best_time is not None else None,
            attempts_practice=int(_as_number(raw.get("attempts_practice"))),
            points_practice=int(_as_number(raw.get("points_practice"))),
            last_attempt_practice=_as_datetime(raw.get("last_attempt_practice")),
            notes=raw.get("notes") if isinstance(raw.get("notes"), str) else None,
        )


class UserProgressEntry(BaseModel):
    """
    Per-user progress on a topic.

    ``status`` is None when the stored entry has no usable status; the
    catalog default then applies.
    """

    status: Optional[str] = ProgressStatus.AVAILABLE
    completion: int = 0
    total_time: float = 0
    algorithms: Dict[str, AlgorithmProgress] = Field(default_factory=dict)

    @classmethod
    def from_raw(cls, raw: Any) -> "UserProgressEntry":
        if not isinstance(raw, dict):
            return cls()
        status = raw.get("status")
        algorithms = raw.get("algorithms")
        if not isinstance(algorithms, dict):
            algorithms = {}
        return cls(
            status=status if status in ProgressStatus.TOPIC_VALUES else None,
            completion=int(_as_number(raw.get("completion"))),
            total_time=_as_number(raw.get("total_time")),
            algorithms={
                str(algo_id): AlgorithmProgress.from_raw(algo)
                for algo_id, algo in algorithms.items()
            },
        )


class ProgressStore:
    """
    The per-user topic -> progress mapping.

    ``get`` never creates anything; ``ensure_topic`` and ``ensure_algorithm``
    construct default entries the first time a topic or algorithm is touched.
    Algorithm entries are never removed.
    """

    def __init__(self, entries: Optional[Dict[str, UserProgressEntry]] = None):
        self.entries: Dict[str, UserProgressEntry] = entries or {}

    @classmethod
    def from_raw(cls, raw: Any) -> "ProgressStore":
        if not isinstance(raw, dict):
            return cls()
        return cls({str(topic_id): UserProgressEntry.from_raw(entry) for topic_id, entry in raw.items()})

    def to_raw(self) -> Dict[str, Any]:
        return {topic_id: entry.model_dump(mode="json") for topic_id, entry in self.entries.items()}

    def get(self, topic_id: str) -> Optional[UserProgressEntry]:
        return self.entries.get(topic_id)

    def get_algorithm(self, topic_id: str, algorithm_id: str) -> Optional[AlgorithmProgress]:
        entry = self.entries.get(topic_id)
        if entry is None:
            return None
        return entry.algorithms.get(algorithm_id)

    def ensure_topic(self, topic_id: str, status: str = ProgressStatus.AVAILABLE) -> UserProgressEntry:
        entry = self.entries.get(topic_id)
        if entry is None:
            entry = UserProgressEntry(status=status)
            self.entries[topic_id] = entry
        return entry

    def ensure_algorithm(self, topic_id: str, algorithm_id: str) -> AlgorithmProgress:
        entry = self.ensure_topic(topic_id)
        progress = entry.algorithms.get(algorithm_id)
        if progress is None:
            progress = AlgorithmProgress()
            entry.algorithms[algorithm_id] = progress
        return progress

    def items(self) -> Iterator[Tuple[str, UserProgressEntry]]:
        return iter(self.entries.items())

    def __contains__(self, topic_id: object) -> bool:
        return topic_id in self.entries

    def __len__(self) -> int:
        return len(self.entries)


# ============= Derived stats =============

class RankInfo(BaseModel):
    level: str = "Bronze"
    points: int = 0


class StreakInfo(BaseModel):
    current: int = 0
    longest: int = 0
    last_active_date: Optional[date] = None


class TimeSpentInfo(BaseModel):
    """Minutes spent learning."""

    total: int = 0
    today: int = 0


class UserStats(BaseModel):
    """Derived per-user aggregate statistics."""

    overall_progress: int = 0
    rank: RankInfo = Field(default_factory=RankInfo)
    daily_problem_points: int = 0
    algorithms_completed: int = 0
    average_accuracy: int = 0
    streak: StreakInfo = Field(default_factory=StreakInfo)
    time_spent: TimeSpentInfo = Field(default_factory=TimeSpentInfo)

    @classmethod
    def from_raw(cls, raw: Any) -> "UserStats":
        if not isinstance(raw, dict):
            return cls()
        rank = raw.get("rank") if isinstance(raw.get("rank"), dict) else {}
        streak = raw.get("streak") if isinstance(raw.get("streak"), dict) else {}
        time_spent = raw.get("time_spent") if isinstance(raw.get("time_spent"), dict) else {}
        last_active = streak.get("last_active_date")
        if isinstance(last_active, str):
            try:
                last_active = date.fromisoformat(last_active[:10])
            except ValueError:
                last_active = None
        elif not isinstance(last_active, date):
            last_active = None
        return cls(
            overall_progress=int(_as_number(raw.get("overall_progress"))),
            rank=RankInfo(
                level=rank.get("level") if isinstance(rank.get("level"), str) else "Bronze",
                points=int(_as_number(rank.get("points"))),
            ),
            daily_problem_points=int(_as_number(raw.get("daily_problem_points"))),
            algorithms_completed=int(_as_number(raw.get("algorithms_completed"))),
            average_accuracy=int(_as_number(raw.get("average_accuracy"))),
            streak=StreakInfo(
                current=int(_as_number(streak.get("current"))),
                longest=int(_as_number(streak.get("longest"))),
                last_active_date=last_active,
            ),
            time_spent=TimeSpentInfo(
                total=int(_as_number(time_spent.get("total"))),
                today=int(_as_number(time_spent.get("today"))),
            ),
        )


class LearningPath(BaseModel):
    """Where the user is in the topic sequence."""

    current_topic: Optional[str] = None
    completed_topics: List[str] = Field(default_factory=list)
    topic_order: List[str] = Field(default_factory=list)
    topic_order_version: Optional[str] = None

    @classmethod
    def from_raw(cls, raw: Any) -> "LearningPath":
        if not isinstance(raw, dict):
            return cls()

        def _str_list(value: Any) -> List[str]:
            if not isinstance(value, list):
                return []
            return [str(item) for item in value if item is not None]

        current = raw.get("current_topic")
        version = raw.get("topic_order_version")
        return cls(
            current_topic=current if isinstance(current, str) else None,
            completed_topics=_str_list(raw.get("completed_topics")),
            topic_order=_str_list(raw.get("topic_order")),
            topic_order_version=version if isinstance(version, str) else None,
        )


# ============= Verdicts and inputs =============

class AccessVerdict(BaseModel):
    """Result of an access check for a (topic, algorithm) pair."""

    has_access: bool
    status: str  # "available", "locked (topic)" or "locked (algorithm)"
    topic_status: str
    algorithm_status: str
    blocker: Optional[str] = None  # "topic", "algorithm"


class ProgressDelta(BaseModel):
    """Progress reported by the client for one algorithm."""

    time_spent_viz: Optional[float] = Field(default=None, ge=0)
    last_attempt_viz: Optional[datetime] = None
    time_spent_practice: Optional[float] = Field(default=None, ge=0)
    accuracy_practice: Optional[float] = Field(default=None, ge=0, le=100)
    attempts_practice: Optional[int] = Field(default=None, ge=0)
    points_practice: Optional[int] = Field(default=None, ge=0)
    last_attempt_practice: Optional[datetime] = None
    completed: bool = False


class DeltaOutcome(BaseModel):
    """What applying a ``ProgressDelta`` changed."""

    points_earned: int = 0
    time_increment_seconds: float = 0
    attempted_practice: bool = False
    completed_now: bool = False
    touched: bool = False
