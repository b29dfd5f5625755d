"""
Admin endpoints: topic catalog management, lock overrides and maintenance.
"""
import logging
from typing import Any, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.dependencies import require_role
from app.core.exceptions import ValidationError
from app.db.base import get_db
from app.models.user import User
from app.schemas.common import Message
from app.schemas.leaderboard import LeaderboardResponse
from app.schemas.topic import LockRequest, TopicCreate, TopicOut, TopicStatusRow, TopicUpdate
from app.schemas.user import RoleUpdate, User as UserSchema
from app.services.catalog import TopicCatalog
from app.services.leaderboard import LeaderboardService
from app.services.progress_service import ProgressService

logger = logging.getLogger(__name__)

router = APIRouter()

require_admin = require_role("admin")


def _check_target(lock_in: LockRequest) -> None:
    if not lock_in.global_ and lock_in.user_id is None:
        raise ValidationError("Specify either 'global': true or a 'user_id'.")


# ============= Topic catalog =============

@router.get("/topics", response_model=List[TopicOut])
def list_topics(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """List every topic, including inactive ones."""
    return TopicCatalog(db).list_all()


@router.post("/topics", response_model=TopicOut, status_code=status.HTTP_201_CREATED)
def create_topic(
    topic_in: TopicCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Create a topic with its algorithms."""
    return TopicCatalog(db).create_topic(topic_in)


@router.put("/topics/{topic_id}", response_model=TopicOut)
def update_topic(
    topic_id: str,
    topic_in: TopicUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Update a topic. Supplying ``algorithms`` replaces the algorithm list."""
    return TopicCatalog(db).update_topic(topic_id, topic_in)


@router.delete("/topics/{topic_id}", response_model=Message)
def delete_topic(
    topic_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Delete a topic. Existing user progress for it is left in place."""
    TopicCatalog(db).delete_topic(topic_id)
    return {"message": f"Topic {topic_id} deleted"}


# ============= Lock overrides =============

def _set_topic_lock(topic_id: str, lock_in: LockRequest, locked: bool, db: Session) -> str:
    _check_target(lock_in)
    if lock_in.global_:
        if locked:
            topic, changed = ProgressService(db).lock_topic_globally(topic_id)
            message = f'Topic "{topic.name}" locked globally. Set to locked for {changed} users.'
        else:
            topic = TopicCatalog(db).set_topic_global_lock(topic_id, False)
            message = f'Topic "{topic.name}" unlocked globally.'
        logger.info(message)
        return message
    service = ProgressService(db)
    return service.set_user_topic_status(lock_in.user_id, topic_id, locked)


def _set_algorithm_lock(topic_id: str, algorithm_id: str, lock_in: LockRequest, locked: bool, db: Session) -> str:
    _check_target(lock_in)
    if lock_in.global_:
        algo = TopicCatalog(db).set_algorithm_global_lock(topic_id, algorithm_id, locked)
        message = f'Algorithm "{algo.name}" {"locked" if locked else "unlocked"} globally.'
        logger.info(message)
        return message
    service = ProgressService(db)
    return service.set_user_algorithm_status(lock_in.user_id, topic_id, algorithm_id, locked)


@router.post("/topics/{topic_id}/lock", response_model=Message)
def lock_topic(
    topic_id: str,
    lock_in: LockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """
    Lock a topic globally or for one user.

    A global lock also sets every user's existing entry to locked, so lifting
    the global lock later does not reopen it; use per-user unlock for that.
    """
    return {"message": _set_topic_lock(topic_id, lock_in, True, db)}


@router.post("/topics/{topic_id}/unlock", response_model=Message)
def unlock_topic(
    topic_id: str,
    lock_in: LockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Lift the global lock, or unlock the topic for one user."""
    return {"message": _set_topic_lock(topic_id, lock_in, False, db)}


@router.post("/topics/{topic_id}/algorithms/{algorithm_id}/lock", response_model=Message)
def lock_algorithm(
    topic_id: str,
    algorithm_id: str,
    lock_in: LockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Lock an algorithm globally or for one user."""
    return {"message": _set_algorithm_lock(topic_id, algorithm_id, lock_in, True, db)}


@router.post("/topics/{topic_id}/algorithms/{algorithm_id}/unlock", response_model=Message)
def unlock_algorithm(
    topic_id: str,
    algorithm_id: str,
    lock_in: LockRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Lift the global lock, or unlock the algorithm for one user."""
    return {"message": _set_algorithm_lock(topic_id, algorithm_id, lock_in, False, db)}


# ============= Users =============

@router.get("/users/{user_id}/topic-statuses", response_model=List[TopicStatusRow])
def get_user_topic_statuses(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Effective status of every topic for one user."""
    _, rows = ProgressService(db).topic_statuses_for_user(user_id)
    return rows


@router.put("/users/{user_id}/role", response_model=UserSchema)
def update_user_role(
    user_id: int,
    role_in: RoleUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Change a user's role."""
    user = ProgressService(db).get_user(user_id)
    user.role = role_in.role
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.username} role set to {role_in.role} by {current_user.username}")
    return user


# ============= Maintenance =============

@router.post("/leaderboard/regenerate", response_model=List[LeaderboardResponse])
def regenerate_leaderboards(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
) -> Any:
    """Rebuild all leaderboard snapshots now."""
    service = LeaderboardService(db)
    responses = []
    for board_type in ("all-time", "daily-practice"):
        service.regenerate(board_type)
        responses.append(service.get_leaderboard(board_type))
    return responses
