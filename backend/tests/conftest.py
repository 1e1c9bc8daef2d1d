"""Pytest configuration and fixtures."""

import pytest
from datetime import datetime, timezone
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from labtasker.deadline_notifier import DeadlineNotificationService
from labtasker.mailers.base import EmailSender, SendResult
from labtasker.models import Base, Project, ProjectMember, Task, User
from labtasker.notification_config import DeadlineConfig

# Monday morning in UTC. Offsets 1/3/7 land on 10/20, 10/22 and 10/26.
FIXED_NOW = datetime(2026, 10, 19, 7, 30, tzinfo=timezone.utc)


class RecordingSender(EmailSender):
    """Email sender that records payloads instead of sending them."""

    def __init__(self):
        self.sent = []
        self.reject = set()
        self.explode = set()

    async def send(self, payload):
        if payload.to in self.explode:
            raise RuntimeError("provider exploded")
        self.sent.append(payload)
        if payload.to in self.reject:
            return SendResult(success=False, message="Mailbox unavailable")
        return SendResult(success=True, message="ok", message_id=f"msg-{len(self.sent)}")

    @property
    def addresses(self):
        return sorted(p.to for p in self.sent)


@pytest.fixture
def engine():
    """In-memory database shared across worker threads."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    """Create an in-memory database session for testing."""
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def add_user(db_session):
    """Insert a user. Email defaults to <id>@lab.test."""

    def _add(user_id, name=None, email="auto", email_notifications=True):
        if email == "auto":
            email = f"{user_id.lower()}@lab.test"
        user = User(
            id=user_id,
            name=name or f"User {user_id}",
            email=email,
            email_notifications=email_notifications,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _add


@pytest.fixture
def add_project(db_session):
    """Insert a project with optional team member ids."""

    def _add(project_id, name, end_date, created_by=None, team=()):
        project = Project(id=project_id, name=name, end_date=end_date, created_by=created_by)
        project.team = [ProjectMember(user_id=member) for member in team]
        db_session.add(project)
        db_session.commit()
        return project

    return _add


@pytest.fixture
def add_task(db_session):
    """Insert a task."""

    def _add(task_id, title, due_date, assignee=None, created_by=None, project_id=None):
        task = Task(
            id=task_id,
            title=title,
            due_date=due_date,
            assignee=assignee,
            created_by=created_by,
            project_id=project_id,
        )
        db_session.add(task)
        db_session.commit()
        return task

    return _add


@pytest.fixture
def mailer():
    return RecordingSender()


@pytest.fixture
def clock():
    """Mutable clock: assign clock.now to move time."""

    class Clock:
        now = FIXED_NOW

        def __call__(self):
            return self.now

    return Clock()


@pytest.fixture
def make_service(session_factory, mailer, clock):
    """Build a DeadlineNotificationService wired to the test database."""

    def _make(config=None, **kwargs):
        kwargs.setdefault("mailer", mailer)
        kwargs.setdefault("clock", clock)
        return DeadlineNotificationService(
            config=config or DeadlineConfig(),
            session_factory=session_factory,
            **kwargs,
        )

    return _make
