"""Tests for models."""

from datetime import datetime

import pytest
from sqlalchemy.exc import IntegrityError

from labtasker.models import Notification, Project, ProjectMember


class TestNotificationModel:
    """Tests for the notifications table."""

    def _notification(self, offset_days=3, recipient_id="U1", entity_id="T1", entity_type="Task"):
        return Notification(
            recipient_id=recipient_id,
            title="Task Deadline Reminder",
            message='Task "Calibrate Sensor" is due in 3 days on 10/22/2026',
            type="warning",
            priority="high",
            category="task",
            related_entity_type=entity_type,
            related_entity_id=entity_id,
            offset_days=offset_days,
            meta={"entityName": "Calibrate Sensor"},
        )

    def test_defaults(self, db_session):
        notification = self._notification()
        db_session.add(notification)
        db_session.commit()
        db_session.refresh(notification)
        assert notification.is_read is False
        assert notification.created_at is not None
        assert notification.meta["entityName"] == "Calibrate Sensor"

    def test_key_is_unique(self, db_session):
        """Same (recipient, entity kind, entity id, offset) cannot be stored twice."""
        db_session.add(self._notification())
        db_session.commit()
        db_session.add(self._notification())
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_other_offset_is_allowed(self, db_session):
        db_session.add(self._notification(offset_days=3))
        db_session.add(self._notification(offset_days=1))
        db_session.commit()
        assert db_session.query(Notification).count() == 2

    def test_other_entity_kind_is_allowed(self, db_session):
        """A project and a task sharing an id are different keys."""
        db_session.add(self._notification(entity_id="42", entity_type="Task"))
        db_session.add(self._notification(entity_id="42", entity_type="Project"))
        db_session.commit()
        assert db_session.query(Notification).count() == 2


class TestProjectTeam:
    def test_team_member_ids_skip_blank_entries(self, db_session):
        project = Project(id="P1", name="Genome Study", end_date=datetime(2026, 10, 20))
        project.team = [
            ProjectMember(user_id="U1", role="lead"),
            ProjectMember(user_id=None, role="guest"),
            ProjectMember(user_id="U2"),
        ]
        db_session.add(project)
        db_session.commit()
        db_session.refresh(project)
        assert sorted(project.team_member_ids) == ["U1", "U2"]
