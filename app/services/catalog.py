"""
Topic catalog: read access for progress computations and admin mutations.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import NotFoundError, ValidationError
from app.core.progress.schemas import AlgorithmDefinition, TopicDefinition
from app.models.topic import Topic, TopicAlgorithm
from app.schemas.topic import TopicCreate, TopicUpdate, AlgorithmIn

logger = logging.getLogger(__name__)


def to_definition(topic: Topic) -> TopicDefinition:
    """Snapshot an ORM topic as the engine's catalog definition."""
    return TopicDefinition(
        id=str(topic.id),
        name=str(topic.name),
        subject=str(topic.subject or ""),
        order=int(topic.order or 0),
        prerequisites=list(topic.prerequisites or []),
        is_globally_locked=bool(topic.is_globally_locked),
        algorithms=[
            AlgorithmDefinition(
                id=str(algo.algorithm_id),
                name=str(algo.name),
                points=int(algo.points or 0),
                difficulty=algo.difficulty,
                is_globally_locked=bool(algo.is_globally_locked),
            )
            for algo in topic.algorithms
        ],
    )


class TopicCatalog:
    """
    Catalog collaborator.

    Reads are snapshots: an admin write running concurrently may or may not be
    visible to a progress computation already in flight.
    """

    def __init__(self, db: Session):
        self.db = db

    # ============= Reads =============

    def get_active_topics(self) -> List[TopicDefinition]:
        """Active topics sorted by ``order`` ascending."""
        topics = (
            self.db.query(Topic)
            .options(selectinload(Topic.algorithms))
            .filter(Topic.is_active.is_(True))
            .order_by(Topic.order, Topic.id)
            .all()
        )
        return [to_definition(topic) for topic in topics]

    def get_topic(self, topic_id: str) -> Optional[TopicDefinition]:
        topic = self.db.query(Topic).filter(Topic.id == topic_id).first()
        return to_definition(topic) if topic else None

    def get_topic_model(self, topic_id: str) -> Topic:
        topic = self.db.query(Topic).filter(Topic.id == topic_id).first()
        if not topic:
            raise NotFoundError(f"Topic '{topic_id}' not found")
        return topic

    def list_all(self) -> List[Topic]:
        return self.db.query(Topic).order_by(Topic.order, Topic.id).all()

    # ============= Admin writes =============

    def _build_algorithms(self, algorithms: List[AlgorithmIn]) -> List[TopicAlgorithm]:
        seen = set()
        built = []
        for position, algo in enumerate(algorithms):
            if algo.id in seen:
                raise ValidationError(f"Duplicate algorithm id '{algo.id}'")
            seen.add(algo.id)
            built.append(
                TopicAlgorithm(
                    algorithm_id=algo.id,
                    name=algo.name,
                    difficulty=algo.difficulty,
                    points=algo.points,
                    position=position,
                    is_globally_locked=algo.is_globally_locked,
                )
            )
        return built

    def create_topic(self, topic_in: TopicCreate) -> Topic:
        if self.db.query(Topic).filter(Topic.id == topic_in.id).first():
            raise ValidationError(f"Topic ID '{topic_in.id}' already exists.")

        topic = Topic(
            id=topic_in.id,
            name=topic_in.name,
            subject=topic_in.subject,
            description=topic_in.description,
            icon=topic_in.icon,
            color=topic_in.color,
            order=topic_in.order,
            estimated_time=topic_in.estimated_time,
            difficulty=topic_in.difficulty,
            prerequisites=list(topic_in.prerequisites),
            is_globally_locked=topic_in.is_globally_locked,
            is_active=topic_in.is_active,
        )
        topic.algorithms = self._build_algorithms(topic_in.algorithms)
        self.db.add(topic)
        self.db.commit()
        self.db.refresh(topic)
        logger.info(f"Topic {topic.id} created with {len(topic.algorithms)} algorithms")
        return topic

    def update_topic(self, topic_id: str, topic_in: TopicUpdate) -> Topic:
        topic = self.get_topic_model(topic_id)
        if topic_in.algorithms is not None and len({a.id for a in topic_in.algorithms}) != len(topic_in.algorithms):
            raise ValidationError("Duplicate algorithm ids in update")
        update_data = topic_in.model_dump(exclude_unset=True, exclude={"algorithms"})
        for field, value in update_data.items():
            setattr(topic, field, value)

        if topic_in.algorithms is not None:
            existing = {algo.algorithm_id: algo for algo in topic.algorithms}
            rebuilt = []
            for position, algo_in in enumerate(topic_in.algorithms):
                algo = existing.pop(algo_in.id, None)
                if algo is None:
                    algo = TopicAlgorithm(algorithm_id=algo_in.id)
                algo.name = algo_in.name
                algo.difficulty = algo_in.difficulty
                algo.points = algo_in.points
                algo.position = position
                algo.is_globally_locked = algo_in.is_globally_locked
                rebuilt.append(algo)
            topic.algorithms = rebuilt

        self.db.commit()
        self.db.refresh(topic)
        logger.info(f"Topic {topic.id} updated")
        return topic

    def delete_topic(self, topic_id: str) -> None:
        topic = self.get_topic_model(topic_id)
        self.db.delete(topic)
        self.db.commit()
        logger.info(f"Topic {topic_id} deleted")

    def set_topic_global_lock(self, topic_id: str, locked: bool) -> Topic:
        topic = self.get_topic_model(topic_id)
        topic.is_globally_locked = locked
        self.db.commit()
        logger.info(f"Topic {topic_id} globally {'locked' if locked else 'unlocked'}")
        return topic

    def set_algorithm_global_lock(self, topic_id: str, algorithm_id: str, locked: bool) -> TopicAlgorithm:
        topic = self.get_topic_model(topic_id)
        algo = next((a for a in topic.algorithms if a.algorithm_id == algorithm_id), None)
        if algo is None:
            raise NotFoundError(f"Algorithm '{algorithm_id}' not found in topic '{topic.name}'")
        algo.is_globally_locked = locked
        self.db.commit()
        logger.info(f"Algorithm {topic_id}.{algorithm_id} globally {'locked' if locked else 'unlocked'}")
        return algo
