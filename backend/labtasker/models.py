"""SQLAlchemy models for LabTasker."""

from datetime import datetime
from sqlalchemy import (
    create_engine,
    Column,
    ForeignKey,
    Index,
    String,
    Boolean,
    Integer,
    DateTime,
    JSON,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

from .config import get_settings

settings = get_settings()
engine = create_engine(settings.database_url, echo=settings.env == "development")
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


class User(Base):
    """Lab member who can receive notifications."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)
    # preferences.notifications.email
    email_notifications = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class Project(Base):
    """Research project with an end date."""

    __tablename__ = "projects"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    end_date = Column(DateTime, nullable=True, index=True)  # local time, naive
    created_by = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    team = relationship(
        "ProjectMember",
        back_populates="project",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def team_member_ids(self) -> list[str]:
        return [m.user_id for m in self.team if m.user_id]


class ProjectMember(Base):
    """Team membership entry for a project."""

    __tablename__ = "project_members"

    id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(String, ForeignKey("projects.id"), nullable=False)
    user_id = Column(String, nullable=True)  # not enforced; may be stale
    role = Column(String, nullable=True)

    project = relationship("Project", back_populates="team")


class Task(Base):
    """Lab task with an optional due date."""

    __tablename__ = "tasks"

    id = Column(String, primary_key=True)
    title = Column(String, nullable=False)
    status = Column(String, nullable=False, default="todo")
    # Legacy rows hold free-text names here instead of user ids
    assignee = Column(String, nullable=True)
    created_by = Column(String, nullable=True)
    due_date = Column(DateTime, nullable=True, index=True)  # local time, naive
    project_id = Column(String, ForeignKey("projects.id"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    project = relationship("Project", lazy="joined")


class Notification(Base):
    """In-app notification.

    Deadline reminders are unique per (recipient, entity kind, entity id,
    offset); the constraint is what makes overlapping cycles safe.
    """

    __tablename__ = "notifications"
    __table_args__ = (
        UniqueConstraint(
            "recipient_id",
            "related_entity_type",
            "related_entity_id",
            "offset_days",
            name="uq_notifications_recipient_entity_offset",
        ),
        Index("ix_notifications_recipient_read_created", "recipient_id", "is_read", "created_at"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    recipient_id = Column(String, nullable=False)
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    type = Column(String, nullable=False, default="info")  # info | success | warning | error | system
    priority = Column(String, nullable=False, default="medium")  # low | medium | high | urgent
    category = Column(String, nullable=False, default="general")  # project | task | ...
    related_entity_type = Column(String, nullable=True)  # "Project" | "Task"
    related_entity_id = Column(String, nullable=True)
    offset_days = Column(Integer, nullable=True)
    meta = Column("metadata", JSON, default=dict)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


def init_db():
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
