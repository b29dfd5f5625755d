"""
Learning path advancement.

Unlocks the topic after the user's current one once its prerequisites are
complete, and keeps the learning path's topic order in line with the catalog.
"""
import hashlib
import logging
from typing import List, Mapping

from app.core.progress.schemas import (
    LearningPath,
    ProgressStatus,
    ProgressStore,
    TopicDefinition,
)

logger = logging.getLogger(__name__)


def catalog_version(topics: List[TopicDefinition]) -> str:
    """Fingerprint of the catalog's topic sequence and algorithm sets."""
    digest = hashlib.sha1()
    for topic in sorted(topics, key=lambda t: (t.order, t.id)):
        digest.update(topic.id.encode())
        digest.update(b":")
        digest.update(",".join(a.id for a in topic.algorithms).encode())
        digest.update(b";")
    return digest.hexdigest()[:16]


class UnlockAdvancer:
    """Single-step unlock of the next topic in the learning path."""

    def initialize(self, store: ProgressStore, learning_path: LearningPath, topics: List[TopicDefinition]) -> None:
        """
        Seed progress for a new account from the active catalog.

        Every topic gets an entry (locked if globally locked) with a default
        record for each of its algorithms; the first topic becomes current.
        """
        self.sync_topic_order(store, learning_path, topics)
        learning_path.current_topic = learning_path.topic_order[0] if learning_path.topic_order else None
        logger.info(f"Initialized progress for {len(topics)} topics. Current: {learning_path.current_topic}")

    def sync_topic_order(
        self, store: ProgressStore, learning_path: LearningPath, topics: List[TopicDefinition]
    ) -> bool:
        """
        Bring the learning path's topic order in line with the live catalog.

        New topics get an initial progress entry and new algorithms get a
        default record; existing entries are kept. Returns True if anything
        changed.
        """
        version = catalog_version(topics)
        if learning_path.topic_order_version == version and learning_path.topic_order:
            return False

        ordered = sorted(topics, key=lambda t: (t.order, t.id))
        for topic in ordered:
            entry = store.ensure_topic(topic.id, topic.initial_status)
            for algorithm in topic.algorithms:
                if algorithm.id not in entry.algorithms:
                    store.ensure_algorithm(topic.id, algorithm.id)

        new_order = [topic.id for topic in ordered]
        if learning_path.topic_order and learning_path.topic_order != new_order:
            logger.info(f"Topic order re-synced: {learning_path.topic_order} -> {new_order}")
        learning_path.topic_order = new_order
        learning_path.topic_order_version = version

        if learning_path.current_topic not in new_order:
            completed = set(learning_path.completed_topics)
            remaining = [topic_id for topic_id in new_order if topic_id not in completed]
            if learning_path.current_topic is not None:
                logger.warning(f"Current topic {learning_path.current_topic} no longer in catalog")
            learning_path.current_topic = remaining[0] if remaining else (new_order[-1] if new_order else None)
        return True

    def prerequisites_met(
        self, topic: TopicDefinition, store: ProgressStore, learning_path: LearningPath
    ) -> bool:
        """
        Every prerequisite must be in ``completed_topics`` and at 100% completion.

        Checking both guards against ``completed_topics`` drifting out of sync
        with the stored completion.
        """
        completed = set(learning_path.completed_topics)
        for prereq_id in topic.prerequisites:
            entry = store.get(prereq_id)
            if prereq_id not in completed or entry is None or entry.completion != 100:
                return False
        return True

    def unlock_next_topic(
        self,
        store: ProgressStore,
        learning_path: LearningPath,
        catalog: Mapping[str, TopicDefinition],
    ) -> bool:
        """
        Unlock the topic after the current one and advance the path.

        Looks one topic ahead only; it is invoked after every algorithm
        completion so chains unlock one step at a time.

        Args:
            store: The user's progress store
            learning_path: The user's learning path, ``current_topic`` may move
            catalog: Topic definitions keyed by topic id

        Returns:
            True if the next topic was unlocked or the path advanced
        """
        current_id = learning_path.current_topic
        order = learning_path.topic_order
        if not current_id or not order or current_id not in order:
            logger.info("No current topic or topic order defined")
            return False

        index = order.index(current_id)
        if index >= len(order) - 1:
            logger.info("Already at the last topic")
            return False

        next_id = order[index + 1]
        next_entry = store.get(next_id)
        next_def = catalog.get(next_id)
        changed = False

        next_status = None
        if next_entry is not None:
            next_status = next_entry.status
            if next_status is None:
                next_status = next_def.initial_status if next_def is not None else ProgressStatus.AVAILABLE

        if next_entry is None:
            logger.warning(f"Next topic {next_id} not found in progress map")
        elif next_status == ProgressStatus.LOCKED:
            if next_def is None:
                logger.warning(f"Next topic {next_id} has no catalog definition, assuming no prerequisites")
                met = True
            else:
                met = self.prerequisites_met(next_def, store, learning_path)
            if met:
                next_entry.status = ProgressStatus.AVAILABLE
                next_status = ProgressStatus.AVAILABLE
                changed = True
                logger.info(f"Prerequisites met. Unlocked topic {next_id}")
            else:
                logger.info(f"Prerequisites not yet met for {next_id}")

        current_entry = store.get(current_id)
        if current_entry is not None and current_entry.completion == 100:
            if next_entry is not None and next_status != ProgressStatus.LOCKED:
                learning_path.current_topic = next_id
                changed = True
                logger.info(f"Advanced current topic to {next_id}")
            else:
                logger.info(f"Topic {current_id} completed but {next_id} is still locked")
        return changed
