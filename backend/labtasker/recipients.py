"""Recipient resolution for deadline notifications.

Project: creator plus every team member.
Task: assignee and creator, falling back to a configured admin when
neither is a usable user id.
"""

import logging
import re
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from .entity_models import (
    DeadlineEntity,
    IdentityCandidate,
    InvalidIdentity,
    ProjectDeadline,
    Recipient,
    TaskDeadline,
    ValidIdentity,
    parse_identity,
)
from .errors import ResolutionFailure
from .models import User

logger = logging.getLogger(__name__)


class RecipientResolver:
    """Computes who should hear about an entity's deadline."""

    def __init__(self, identity_pattern: str, fallback_recipient_id: Optional[str] = None):
        self.pattern = re.compile(identity_pattern)
        self.fallback_recipient_id = fallback_recipient_id or None

    def candidates(self, entity: DeadlineEntity) -> list[IdentityCandidate]:
        """Classify every identity field attached to the entity."""
        if isinstance(entity, ProjectDeadline):
            raw_values = [entity.created_by, *entity.team_member_ids]
        elif isinstance(entity, TaskDeadline):
            raw_values = [entity.assignee, entity.created_by]
        else:
            raise TypeError(f"Unsupported entity: {type(entity).__name__}")

        return [parse_identity(raw, self.pattern) for raw in raw_values if raw is not None]

    def resolve(self, entity: DeadlineEntity) -> set[str]:
        """Return the deduplicated recipient ids for an entity.

        Args:
            entity: Project or task snapshot

        Returns:
            Set of user ids. Empty when nobody can be notified.
        """
        recipient_ids = set()
        for candidate in self.candidates(entity):
            if isinstance(candidate, ValidIdentity):
                recipient_ids.add(candidate.id)
            elif isinstance(candidate, InvalidIdentity):
                logger.debug(
                    f"Skipping invalid identity {candidate.raw!r} on "
                    f"{entity.kind.value} {entity.id}"
                )

        if not recipient_ids and isinstance(entity, TaskDeadline) and self.fallback_recipient_id:
            logger.info(
                f"Task {entity.id} has no valid recipients, "
                f"using fallback {self.fallback_recipient_id}"
            )
            recipient_ids.add(self.fallback_recipient_id)

        if not recipient_ids:
            logger.info(
                f'Skipping {entity.kind.value} "{entity.display_name}" - '
                f"no valid recipients found"
            )

        return recipient_ids

    def lookup(self, db: Session, recipient_ids: Iterable[str]) -> list[Recipient]:
        """Load recipients for ids, dropping ids without a user record.

        Args:
            db: Database session
            recipient_ids: Ids produced by resolve()

        Returns:
            Recipients sorted by id
        """
        ids = sorted(set(recipient_ids))
        if not ids:
            return []

        users = {u.id: u for u in db.query(User).filter(User.id.in_(ids)).all()}

        recipients = []
        for recipient_id in ids:
            user = users.get(recipient_id)
            if user is None:
                failure = ResolutionFailure(recipient_id, "no such user")
                logger.debug(str(failure))
                continue
            recipients.append(
                Recipient(
                    id=user.id,
                    name=user.name,
                    email=user.email,
                    email_enabled=bool(user.email_notifications),
                )
            )
        return recipients
