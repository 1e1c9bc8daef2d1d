"""Notification persistence with idempotent deadline reminders."""

import logging
from dataclasses import dataclass, field
from typing import Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .entity_models import DeadlineEntity
from .errors import StoreFailure
from .models import Notification
from .notification_config import DeadlineOffset

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NotificationContent:
    """Text and classification for a notification about to be stored."""

    title: str
    message: str
    type: str = "warning"
    priority: str = "high"
    category: str = "general"
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class IdempotencyKey:
    """(recipient, entity kind, entity id, offset). At most one notification per key.

    Project and task ids live in separate tables, so the kind is part of the key.
    """

    recipient_id: str
    entity_type: str
    entity_id: str
    offset_days: int


class NotificationStore:
    """Creates and queries notifications."""

    def create_if_absent(
        self,
        db: Session,
        recipient_id: str,
        entity: DeadlineEntity,
        offset: DeadlineOffset,
        content: NotificationContent,
    ) -> tuple[Notification, bool]:
        """Create the notification for a key unless it already exists.

        The unique constraint on the key decides. A duplicate insert is
        rolled back and the stored notification is returned unchanged.
        Commits the session, so pass a session dedicated to this unit.

        Args:
            db: Database session
            recipient_id: User being notified
            entity: Project or task snapshot
            offset: Offset the reminder is for
            content: Title, message and metadata

        Returns:
            (notification, created) where created is False for duplicates

        Raises:
            StoreFailure: On any persistence error other than a duplicate
        """
        key = IdempotencyKey(recipient_id, entity.kind.model_name, entity.id, offset.days)
        notification = Notification(
            recipient_id=recipient_id,
            title=content.title,
            message=content.message,
            type=content.type,
            priority=content.priority,
            category=content.category,
            related_entity_type=entity.kind.model_name,
            related_entity_id=entity.id,
            offset_days=offset.days,
            meta=dict(content.metadata),
        )

        try:
            db.add(notification)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                existing = self.get_by_key(db, key)
                if existing is None:
                    raise
                logger.info(
                    f"Notification already exists for recipient {recipient_id} "
                    f"({entity.id}, {offset.days}d)"
                )
                return existing, False
            db.refresh(notification)
        except SQLAlchemyError as e:
            db.rollback()
            raise StoreFailure(recipient_id, entity.id, offset.days, str(e)) from e

        logger.info(
            f"Created deadline notification for recipient {recipient_id} "
            f"({entity.id}, {offset.days}d)"
        )
        return notification, True

    def get_by_key(self, db: Session, key: IdempotencyKey) -> Optional[Notification]:
        return (
            db.query(Notification)
            .filter(
                Notification.recipient_id == key.recipient_id,
                Notification.related_entity_type == key.entity_type,
                Notification.related_entity_id == key.entity_id,
                Notification.offset_days == key.offset_days,
            )
            .one_or_none()
        )

    def list_for_recipient(
        self,
        db: Session,
        recipient_id: str,
        unread_only: bool = False,
        limit: int = 50,
    ) -> list[Notification]:
        """Newest-first notifications for one user."""
        query = db.query(Notification).filter(Notification.recipient_id == recipient_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        return (
            query.order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    def recent_deadline_notifications(self, db: Session, limit: int = 10) -> list[Notification]:
        """Newest-first deadline reminders across all users."""
        return (
            db.query(Notification)
            .filter(Notification.offset_days.isnot(None))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(limit)
            .all()
        )

    def count_deadline_notifications(self, db: Session) -> int:
        return db.query(Notification).filter(Notification.offset_days.isnot(None)).count()
