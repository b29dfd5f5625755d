"""
Doubt forum: learners ask in unlocked subjects, mentors answer.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import case
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import AccessDeniedError, InvalidStateError, NotFoundError
from app.core.progress.access_resolver import AccessResolver
from app.core.progress.schemas import ProgressStore
from app.models.doubt import Doubt, DoubtMessage
from app.models.user import User
from app.schemas.doubt import DoubtCreate, DoubtMessageOut, DoubtThread
from app.services.catalog import TopicCatalog

logger = logging.getLogger(__name__)

OPEN = "open"
CLOSED = "closed"
STAFF_ROLES = ("mentor", "admin")


def sender_role(user: User) -> str:
    return "mentor" if user.role in STAFF_ROLES else "user"


def to_message_out(message: DoubtMessage) -> DoubtMessageOut:
    out = DoubtMessageOut.model_validate(message)
    out.sender_username = message.sender.username if message.sender else None
    return out


def to_thread(doubt: Doubt) -> DoubtThread:
    thread = DoubtThread.model_validate(doubt, from_attributes=True)
    thread.messages = [to_message_out(message) for message in doubt.messages]
    return thread


class DoubtService:
    """Doubt threads, subject gating and expiry of closed threads."""

    def __init__(self, db: Session, catalog: Optional[TopicCatalog] = None):
        self.db = db
        self.catalog = catalog or TopicCatalog(db)
        self.resolver = AccessResolver()

    def accessible_subjects(self, user: User) -> List[str]:
        store = ProgressStore.from_raw(user.progress)
        return self.resolver.accessible_subjects(self.catalog.get_active_topics(), store)

    def purge_expired(self, now: Optional[datetime] = None) -> int:
        """Delete closed doubts whose retention window has passed."""
        now = now or datetime.now(timezone.utc)
        expired = self.db.query(Doubt).filter(Doubt.expire_at.isnot(None), Doubt.expire_at <= now).all()
        for doubt in expired:
            self.db.delete(doubt)
        if expired:
            self.db.commit()
            logger.info(f"Purged {len(expired)} expired doubts")
        return len(expired)

    def get_doubt(self, doubt_id: int) -> Doubt:
        doubt = self.db.query(Doubt).filter(Doubt.id == doubt_id).first()
        if not doubt:
            raise NotFoundError("Doubt not found")
        return doubt

    def _get_owned(self, user: User, doubt_id: int) -> Doubt:
        doubt = self.get_doubt(doubt_id)
        if doubt.user_id != user.id:
            raise AccessDeniedError("Access denied")
        return doubt

    def _append(self, doubt: Doubt, sender: User, text: str) -> DoubtMessage:
        if doubt.status == CLOSED:
            raise InvalidStateError("This doubt is closed. Please ask a new one.")
        message = DoubtMessage(sender_id=sender.id, sender_role=sender_role(sender), message=text)
        doubt.messages.append(message)
        doubt.status = OPEN
        doubt.last_replier_id = sender.id
        doubt.updated_at = datetime.now(timezone.utc)
        self.db.commit()
        self.db.refresh(message)
        return message

    # ============= Learner =============

    def ask(self, user: User, data: DoubtCreate) -> DoubtThread:
        """
        Open a doubt in a subject.

        Raises:
            AccessDeniedError: The user has no unlocked topic in the subject
        """
        if data.subject not in self.accessible_subjects(user):
            raise AccessDeniedError(
                f'You must unlock a topic in "{data.subject}" before asking doubts in it.',
                blocker="topic",
            )
        doubt = Doubt(
            user_id=user.id,
            subject=data.subject,
            title=data.title,
            status=OPEN,
            last_replier_id=user.id,
        )
        doubt.messages.append(DoubtMessage(sender_id=user.id, sender_role=sender_role(user), message=data.message))
        self.db.add(doubt)
        self.db.commit()
        self.db.refresh(doubt)
        logger.info(f"User {user.id} asked doubt {doubt.id} in {data.subject}")
        return to_thread(doubt)

    def list_my_doubts(self, user: User) -> List[Doubt]:
        """Own doubts, open ones first, most recently updated first."""
        self.purge_expired()
        return (
            self.db.query(Doubt)
            .filter(Doubt.user_id == user.id)
            .order_by(case((Doubt.status == OPEN, 0), else_=1), Doubt.updated_at.desc(), Doubt.id.desc())
            .all()
        )

    def get_thread(self, user: User, doubt_id: int) -> DoubtThread:
        """Owners and staff may read a thread."""
        doubt = self.get_doubt(doubt_id)
        if doubt.user_id != user.id and user.role not in STAFF_ROLES:
            raise AccessDeniedError("Access denied")
        return to_thread(doubt)

    def reply(self, user: User, doubt_id: int, text: str) -> DoubtMessageOut:
        doubt = self._get_owned(user, doubt_id)
        return to_message_out(self._append(doubt, user, text))

    def close(self, user: User, doubt_id: int) -> Doubt:
        """Close a doubt; it is purged ``DOUBT_RETENTION_HOURS`` later."""
        doubt = self._get_owned(user, doubt_id)
        if doubt.status != CLOSED:
            now = datetime.now(timezone.utc)
            doubt.status = CLOSED
            doubt.closed_at = now
            doubt.expire_at = now + timedelta(hours=settings.DOUBT_RETENTION_HOURS)
            self.db.commit()
            self.db.refresh(doubt)
            logger.info(f"User {user.id} closed doubt {doubt_id}")
        return doubt

    # ============= Mentor =============

    def list_open(self, subject: Optional[str] = None) -> List[Doubt]:
        """Open doubts, optionally for one subject, oldest activity first."""
        query = self.db.query(Doubt).filter(Doubt.status == OPEN)
        if subject:
            query = query.filter(Doubt.subject == subject)
        return query.order_by(Doubt.updated_at, Doubt.id).all()

    def mentor_reply(self, mentor: User, doubt_id: int, text: str) -> DoubtMessageOut:
        doubt = self.get_doubt(doubt_id)
        message = self._append(doubt, mentor, text)
        logger.info(f"Mentor {mentor.id} replied to doubt {doubt_id}")
        return to_message_out(message)
