"""Deadline scanner.

Finds projects and tasks whose deadline falls on the calendar day that is
`offset.days` away from now, in the lab's local timezone.
"""

import logging
from datetime import datetime, time, timedelta, tzinfo

from sqlalchemy.orm import Session

from .entity_models import DeadlineEntity, EntityKind, ProjectDeadline, TaskDeadline
from .models import Project, Task
from .notification_config import DeadlineOffset

logger = logging.getLogger(__name__)


def day_window(now: datetime, days: int, tz: tzinfo) -> tuple[datetime, datetime]:
    """Return the inclusive local-time window for the day `days` from now.

    Deadlines are stored as naive local datetimes, so the window is naive too.

    Args:
        now: Current instant. Naive values are taken as already local.
        days: Offset in days
        tz: Local timezone

    Returns:
        (start of day, end of day) with end at 23:59:59.999999
    """
    local_now = now.astimezone(tz).replace(tzinfo=None) if now.tzinfo else now
    target = local_now.date() + timedelta(days=days)
    return datetime.combine(target, time.min), datetime.combine(target, time.max)


class DeadlineScanner:
    """Queries entities with deadlines inside an offset's day window."""

    def __init__(self, tz: tzinfo):
        self.tz = tz

    def scan(
        self,
        db: Session,
        offset: DeadlineOffset,
        kind: EntityKind,
        now: datetime,
    ) -> list[DeadlineEntity]:
        """Return snapshots of every `kind` entity due on the offset's day.

        Args:
            db: Database session
            offset: Offset being evaluated
            kind: Project or task
            now: Current instant

        Returns:
            Snapshots ordered by deadline then id
        """
        start, end = day_window(now, offset.days, self.tz)

        if kind == EntityKind.PROJECT:
            entities = self._scan_projects(db, start, end)
        elif kind == EntityKind.TASK:
            entities = self._scan_tasks(db, start, end)
        else:
            raise ValueError(f"Unknown entity kind: {kind}")

        logger.info(f"Found {len(entities)} {kind.value}s with deadlines {offset.label}")
        return entities

    def _scan_projects(self, db: Session, start: datetime, end: datetime) -> list[ProjectDeadline]:
        projects = (
            db.query(Project)
            .filter(
                Project.end_date.isnot(None),
                Project.end_date >= start,
                Project.end_date <= end,
            )
            .order_by(Project.end_date, Project.id)
            .all()
        )
        return [
            ProjectDeadline(
                id=p.id,
                name=p.name,
                end_date=p.end_date,
                created_by=p.created_by,
                team_member_ids=tuple(p.team_member_ids),
            )
            for p in projects
        ]

    def _scan_tasks(self, db: Session, start: datetime, end: datetime) -> list[TaskDeadline]:
        tasks = (
            db.query(Task)
            .filter(
                Task.due_date.isnot(None),
                Task.due_date >= start,
                Task.due_date <= end,
            )
            .order_by(Task.due_date, Task.id)
            .all()
        )
        return [
            TaskDeadline(
                id=t.id,
                title=t.title,
                due_date=t.due_date,
                assignee=t.assignee,
                created_by=t.created_by,
                project_id=t.project_id,
                project_name=t.project.name if t.project else None,
            )
            for t in tasks
        ]
