"""Read-only snapshots of deadline-bearing entities and recipients.

The deadline cycle never holds ORM objects across I/O calls. Each scan
copies the rows it needs into these frozen dataclasses.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Union


class EntityKind(Enum):
    """Kinds of entities that carry a deadline."""

    PROJECT = "project"
    TASK = "task"

    @property
    def model_name(self) -> str:
        """Name stored in Notification.related_entity_type."""
        return self.value.capitalize()


@dataclass(frozen=True)
class ProjectDeadline:
    """Project with its end date and team."""

    id: str
    name: str
    end_date: datetime
    created_by: Optional[str] = None
    team_member_ids: tuple = ()

    kind = EntityKind.PROJECT

    @property
    def display_name(self) -> str:
        return self.name

    @property
    def deadline(self) -> datetime:
        return self.end_date


@dataclass(frozen=True)
class TaskDeadline:
    """Task with its due date and people attached to it."""

    id: str
    title: str
    due_date: datetime
    assignee: Optional[str] = None
    created_by: Optional[str] = None
    project_id: Optional[str] = None
    project_name: Optional[str] = None

    kind = EntityKind.TASK

    @property
    def display_name(self) -> str:
        return self.title

    @property
    def deadline(self) -> datetime:
        return self.due_date


DeadlineEntity = Union[ProjectDeadline, TaskDeadline]


@dataclass(frozen=True)
class Recipient:
    """User who can receive a notification."""

    id: str
    name: str
    email: Optional[str] = None
    email_enabled: bool = False

    @property
    def wants_email(self) -> bool:
        return self.email_enabled and bool(self.email)


# =============================================================================
# Identity candidates
# =============================================================================


@dataclass(frozen=True)
class ValidIdentity:
    """Raw value that matches the user id format."""

    id: str


@dataclass(frozen=True)
class InvalidIdentity:
    """Raw value that is not a user id (legacy names, blanks, junk)."""

    raw: object = field(default=None)


IdentityCandidate = Union[ValidIdentity, InvalidIdentity]


def parse_identity(raw: object, pattern: "re.Pattern[str]") -> IdentityCandidate:
    """Classify a raw identity field.

    Args:
        raw: Value read from an assignee/creator/team field
        pattern: Compiled user id format

    Returns:
        ValidIdentity if raw is a string matching pattern, else InvalidIdentity
    """
    if isinstance(raw, str):
        value = raw.strip()
        if value and pattern.fullmatch(value):
            return ValidIdentity(value)
    return InvalidIdentity(raw)
