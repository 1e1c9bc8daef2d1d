"""Channel dispatch for deadline notifications.

Two channels per recipient:
- In-app: the notification row itself. If it cannot be stored, nothing
  else happens for that recipient.
- Email: only for newly created notifications, only when the recipient
  opted in, and only when an email provider is configured. A failed send
  is logged and never undoes the in-app row.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .entity_models import DeadlineEntity, Recipient
from .errors import DeliveryFailure, StoreFailure
from .mailers import EmailPayload, EmailSender
from .models import Notification
from .notification_config import DeadlineOffset
from .notification_store import NotificationContent, NotificationStore

logger = logging.getLogger(__name__)


class InAppStatus(Enum):
    CREATED = "created"
    EXISTING = "existing"
    FAILED = "failed"


class EmailStatus(Enum):
    SENT = "sent"
    FAILED = "failed"
    SKIPPED = "skipped"  # delivery disabled, opted out, no address, or not new


@dataclass
class DeliveryOutcome:
    """What happened on each channel for one recipient."""

    recipient_id: str
    in_app: InAppStatus
    email: EmailStatus = EmailStatus.SKIPPED
    error: Optional[str] = None


class ChannelDispatcher:
    """Writes the in-app notification, then emails if the recipient opted in."""

    def __init__(
        self,
        store: NotificationStore,
        session_factory: Callable[[], Session],
        mailer: EmailSender,
        app_name: str = "LabTasker",
        io_timeout_seconds: float = 30.0,
    ):
        self.store = store
        self.session_factory = session_factory
        self.mailer = mailer
        self.app_name = app_name
        self.io_timeout_seconds = io_timeout_seconds

        if not mailer.enabled:
            logger.warning("Email delivery is disabled, deadline reminders are in-app only")

    def _create_sync(
        self,
        recipient_id: str,
        entity: DeadlineEntity,
        offset: DeadlineOffset,
        content: NotificationContent,
    ) -> tuple[Notification, bool]:
        db = self.session_factory()
        try:
            return self.store.create_if_absent(db, recipient_id, entity, offset, content)
        finally:
            db.close()

    async def create_in_app(
        self,
        recipient: Recipient,
        entity: DeadlineEntity,
        offset: DeadlineOffset,
        content: NotificationContent,
    ) -> tuple[Notification, bool]:
        """Run the store write in a worker thread under the I/O timeout.

        Raises:
            StoreFailure: On persistence error or timeout
        """
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self._create_sync, recipient.id, entity, offset, content),
                timeout=self.io_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise StoreFailure(
                recipient.id,
                entity.id,
                offset.days,
                f"timed out after {self.io_timeout_seconds}s",
            ) from e
        except StoreFailure:
            raise
        except Exception as e:
            raise StoreFailure(recipient.id, entity.id, offset.days, str(e)) from e

    def build_email(self, notification: Notification, recipient: Recipient) -> EmailPayload:
        """Email payload mirroring the in-app notification."""
        meta = notification.meta or {}
        entity_name = meta.get("entityName")
        subject = f"{notification.title}: {entity_name}" if entity_name else notification.title
        return EmailPayload(
            to=recipient.email,
            subject=subject,
            template="notification",
            data={
                "user_name": recipient.name,
                "subject": subject,
                "message": notification.message,
                "app_name": self.app_name,
            },
            priority=notification.priority if notification.priority == "high" else "normal",
        )

    async def send_email(self, notification: Notification, recipient: Recipient) -> None:
        """Send the email channel for a notification.

        Raises:
            DeliveryFailure: Provider rejected the message, raised, or timed out
        """
        entity_id = notification.related_entity_id
        try:
            payload = self.build_email(notification, recipient)
            result = await asyncio.wait_for(
                self.mailer.send(payload), timeout=self.io_timeout_seconds
            )
        except asyncio.TimeoutError as e:
            raise DeliveryFailure(
                recipient.email, entity_id, f"timed out after {self.io_timeout_seconds}s"
            ) from e
        except Exception as e:
            raise DeliveryFailure(recipient.email, entity_id, str(e)) from e

        if not result.success:
            raise DeliveryFailure(recipient.email, entity_id, result.message)

    async def deliver(
        self,
        recipient: Recipient,
        entity: DeadlineEntity,
        offset: DeadlineOffset,
        content: NotificationContent,
    ) -> DeliveryOutcome:
        """Deliver one notification to one recipient on both channels.

        Never raises for store or email errors; they are logged and
        reported in the outcome.
        """
        try:
            notification, created = await self.create_in_app(recipient, entity, offset, content)
        except StoreFailure as e:
            logger.error(str(e))
            return DeliveryOutcome(recipient.id, InAppStatus.FAILED, error=e.reason)

        if not created:
            return DeliveryOutcome(recipient.id, InAppStatus.EXISTING)

        outcome = DeliveryOutcome(recipient.id, InAppStatus.CREATED)
        if not self.mailer.enabled:
            return outcome
        if not recipient.wants_email:
            if recipient.email_enabled:
                logger.warning(
                    f"Recipient {recipient.id} has email notifications enabled but no address"
                )
            return outcome

        try:
            await self.send_email(notification, recipient)
        except DeliveryFailure as e:
            logger.warning(
                f"Failed to send email for {entity.kind.value} deadline "
                f"({entity.id}, {offset.days}d) to {e.address}: {e.reason}"
            )
            outcome.email = EmailStatus.FAILED
            outcome.error = e.reason
            return outcome

        logger.info(f"Email sent for {entity.kind.value} deadline to {recipient.email}")
        outcome.email = EmailStatus.SENT
        return outcome
