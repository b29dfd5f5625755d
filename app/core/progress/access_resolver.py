"""
Access resolution for topics and algorithms.

Combines the catalog's global lock flags with the user's own status to produce
the effective status the UI and the progress endpoints act on.
"""
import logging
from typing import Iterable, List, Optional

from app.core.exceptions import NotFoundError
from app.core.progress.schemas import (
    AccessVerdict,
    AlgorithmDefinition,
    AlgorithmProgress,
    ProgressStatus,
    ProgressStore,
    TopicDefinition,
    UserProgressEntry,
)

logger = logging.getLogger(__name__)


def default_topic_status(topic_def: TopicDefinition, entry: Optional[UserProgressEntry]) -> str:
    """
    User-specific topic status, falling back to the catalog default.

    A missing progress entry is never "not found": it means locked when the
    topic is globally locked and available otherwise.
    """
    if entry is not None and entry.status:
        return entry.status
    return topic_def.initial_status


def default_algorithm_status(algo_progress: Optional[AlgorithmProgress]) -> str:
    """User-specific algorithm status; no record means available."""
    if algo_progress is not None and algo_progress.status:
        return algo_progress.status
    return ProgressStatus.AVAILABLE


class AccessResolver:
    """
    Resolves effective lock status.

    Prerequisites are not re-derived here: they gate the transition from
    locked to available in ``UnlockAdvancer`` and the result is cached in the
    user's topic status.
    """

    @staticmethod
    def effective_topic_status(
        topic_def: TopicDefinition,
        entry: Optional[UserProgressEntry],
        completed_topics: Optional[Iterable[str]] = None,
    ) -> str:
        """
        Effective status of a topic for one user.

        Args:
            topic_def: Catalog definition of the topic
            entry: The user's progress entry for the topic, if any
            completed_topics: The user's completed topic ids (unused by the
                read-time rule, accepted so callers pass one consistent context)

        Returns:
            One of the topic status values
        """
        user_specific = default_topic_status(topic_def, entry)
        if topic_def.is_globally_locked:
            # Only an explicit non-locked user status overrides a global lock
            return ProgressStatus.LOCKED if user_specific == ProgressStatus.LOCKED else user_specific
        return user_specific

    @staticmethod
    def effective_algorithm_status(
        algo_def: AlgorithmDefinition,
        algo_progress: Optional[AlgorithmProgress],
        topic_status: str,
    ) -> str:
        """
        Effective status of an algorithm for one user.

        A locked topic always locks its algorithms.
        """
        user_specific = default_algorithm_status(algo_progress)
        if algo_def.is_globally_locked:
            status = ProgressStatus.AVAILABLE if user_specific == ProgressStatus.AVAILABLE else ProgressStatus.LOCKED
        else:
            status = user_specific

        if topic_status == ProgressStatus.LOCKED:
            status = ProgressStatus.LOCKED
        return status

    def check_access(
        self,
        topic_def: Optional[TopicDefinition],
        algorithm_id: str,
        entry: Optional[UserProgressEntry],
        completed_topics: Optional[Iterable[str]] = None,
    ) -> AccessVerdict:
        """
        Decide whether the user may act on ``(topic, algorithm)``.

        Raises:
            NotFoundError: If the topic or algorithm is not in the catalog
        """
        if topic_def is None:
            raise NotFoundError("Topic definition not found")

        algo_def = topic_def.find_algorithm(algorithm_id)
        if algo_def is None:
            logger.error(f"Algorithm definition {algorithm_id} not found in topic {topic_def.id}")
            raise NotFoundError("Algorithm definition not found")

        topic_status = self.effective_topic_status(topic_def, entry, completed_topics)
        algo_progress = entry.algorithms.get(algorithm_id) if entry is not None else None
        algorithm_status = self.effective_algorithm_status(algo_def, algo_progress, topic_status)

        has_access = topic_status != ProgressStatus.LOCKED and algorithm_status != ProgressStatus.LOCKED
        blocker = None
        reported = ProgressStatus.AVAILABLE
        if topic_status == ProgressStatus.LOCKED:
            blocker = "topic"
            reported = "locked (topic)"
        elif algorithm_status == ProgressStatus.LOCKED:
            blocker = "algorithm"
            reported = "locked (algorithm)"

        logger.info(
            f"Access check {topic_def.id}/{algorithm_id}: topic={topic_status} "
            f"algorithm={algorithm_status} granted={has_access}"
        )
        return AccessVerdict(
            has_access=has_access,
            status=reported,
            topic_status=topic_status,
            algorithm_status=algorithm_status,
            blocker=blocker,
        )

    @staticmethod
    def describe_topic_status(topic_def: TopicDefinition, entry: Optional[UserProgressEntry]) -> str:
        """Human readable status for the admin user view."""
        user_specific = default_topic_status(topic_def, entry)
        effective = AccessResolver.effective_topic_status(topic_def, entry)
        text = effective.capitalize()
        if effective == ProgressStatus.LOCKED:
            if topic_def.is_globally_locked:
                return "Locked Globally"
            if user_specific == ProgressStatus.LOCKED:
                return "Locked for User"
            return "Locked"
        if topic_def.is_globally_locked:
            return f"Unlocked for User ({text})"
        return text

    def accessible_subjects(self, topics: List[TopicDefinition], store: ProgressStore) -> List[str]:
        """
        Subjects in which at least one topic is not locked for the user.

        A subject with no topics is never accessible.
        """
        subjects = set()
        for topic_def in topics:
            if not topic_def.subject or topic_def.subject in subjects:
                continue
            if self.effective_topic_status(topic_def, store.get(topic_def.id)) != ProgressStatus.LOCKED:
                subjects.add(topic_def.subject)
        return sorted(subjects)
