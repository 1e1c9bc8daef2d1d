"""Deadline notification cycle.

One cycle:
- For every configured offset and for projects, then tasks: find entities
  due on the offset's day
- Resolve who should hear about each entity
- Create one in-app notification per (recipient, entity, offset) and email
  recipients who opted in

Every (offset, kind) pair, entity and recipient is its own failure unit.
Errors are logged and counted, never raised out of run_cycle(), except
ConfigurationError.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from sqlalchemy.orm import Session

from .config import Settings, get_settings
from .dispatcher import ChannelDispatcher, EmailStatus, InAppStatus
from .entity_models import DeadlineEntity, EntityKind, ProjectDeadline, Recipient
from .errors import ConfigurationError, ResolutionFailure, ScanFailure
from .mailers import EmailSender, get_mailer
from .notification_config import DeadlineConfig, DeadlineOffset, load_deadline_config
from .notification_store import NotificationContent, NotificationStore
from .recipients import RecipientResolver
from .scanner import DeadlineScanner

logger = logging.getLogger(__name__)

ENTITY_KINDS = (EntityKind.PROJECT, EntityKind.TASK)


class CycleState(Enum):
    IDLE = "idle"
    RUNNING = "running"


@dataclass
class CycleReport:
    """Counters for one cycle."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    pairs_scanned: int = 0
    pairs_failed: int = 0
    entities_matched: int = 0
    entities_skipped: int = 0
    entities_failed: int = 0
    recipients_dropped: int = 0
    notifications_created: int = 0
    notifications_existing: int = 0
    store_failures: int = 0
    emails_sent: int = 0
    email_failures: int = 0
    timed_out: bool = False
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["finished_at"] = self.finished_at.isoformat() if self.finished_at else None
        return data


def format_deadline(value: datetime) -> str:
    """Short date like 10/22/2026."""
    return f"{value.month}/{value.day}/{value.year}"


def build_content(entity: DeadlineEntity, offset: DeadlineOffset) -> NotificationContent:
    """Notification title, message and metadata for an entity and offset."""
    due = format_deadline(entity.deadline)

    if isinstance(entity, ProjectDeadline):
        return NotificationContent(
            title="Project Deadline Reminder",
            message=f'Project "{entity.name}" deadline is {offset.label} on {due}',
            type="warning",
            priority="high",
            category="project",
            metadata={
                "entityId": entity.id,
                "entityName": entity.name,
                "offsetDays": offset.days,
                "deadlineType": "project",
                "projectId": entity.id,
                "projectName": entity.name,
            },
        )

    return NotificationContent(
        title="Task Deadline Reminder",
        message=f'Task "{entity.title}" is due {offset.label} on {due}',
        type="warning",
        priority="high",
        category="task",
        metadata={
            "entityId": entity.id,
            "entityName": entity.title,
            "offsetDays": offset.days,
            "deadlineType": "task",
            "projectId": entity.project_id,
            "projectName": entity.project_name,
        },
    )


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class DeadlineNotificationService:
    """Scans for approaching deadlines and notifies the people involved."""

    def __init__(
        self,
        config: DeadlineConfig,
        session_factory: Callable[[], Session],
        mailer: EmailSender,
        identity_pattern: str = r"^[A-Za-z0-9_-]{1,64}$",
        app_name: str = "LabTasker",
        io_timeout_seconds: float = 30.0,
        cycle_timeout_seconds: float = 1800.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.config = config
        self.session_factory = session_factory
        self.io_timeout_seconds = io_timeout_seconds
        self.cycle_timeout_seconds = cycle_timeout_seconds
        self.clock = clock

        self.scanner = DeadlineScanner(config.tzinfo)
        self.resolver = RecipientResolver(identity_pattern, config.fallback_recipient_id)
        self.store = NotificationStore()
        self.dispatcher = ChannelDispatcher(
            store=self.store,
            session_factory=session_factory,
            mailer=mailer,
            app_name=app_name,
            io_timeout_seconds=io_timeout_seconds,
        )

        self._active_runs = 0
        self.last_report: Optional[CycleReport] = None

    @classmethod
    def from_settings(
        cls,
        settings: Optional[Settings] = None,
        session_factory: Optional[Callable[[], Session]] = None,
        mailer: Optional[EmailSender] = None,
    ) -> "DeadlineNotificationService":
        """Build the service from application settings."""
        settings = settings or get_settings()
        if session_factory is None:
            from .models import SessionLocal

            session_factory = SessionLocal

        config_path = Path(settings.deadline_offsets_file)
        if not config_path.is_absolute():
            # Relative to project root (parent of backend/)
            config_path = Path(__file__).parent.parent.parent / config_path

        config = load_deadline_config(
            config_path,
            fallback_recipient_id=settings.fallback_recipient_id,
            timezone=settings.timezone,
        )

        try:
            mailer = mailer or get_mailer(settings=settings)
        except ValueError as e:
            raise ConfigurationError(str(e)) from e

        return cls(
            config=config,
            session_factory=session_factory,
            mailer=mailer,
            identity_pattern=settings.identity_pattern,
            app_name=settings.app_name,
            io_timeout_seconds=settings.io_timeout_seconds,
            cycle_timeout_seconds=settings.cycle_timeout_seconds,
        )

    @property
    def state(self) -> CycleState:
        return CycleState.RUNNING if self._active_runs else CycleState.IDLE

    # =========================================================================
    # Blocking storage calls (run in worker threads)
    # =========================================================================

    def _scan_sync(
        self, offset: DeadlineOffset, kind: EntityKind, now: datetime
    ) -> list[DeadlineEntity]:
        db = self.session_factory()
        try:
            return self.scanner.scan(db, offset, kind, now)
        finally:
            db.close()

    def _lookup_sync(self, recipient_ids: set[str]) -> list[Recipient]:
        db = self.session_factory()
        try:
            return self.resolver.lookup(db, recipient_ids)
        finally:
            db.close()

    async def _in_thread(self, func, *args):
        return await asyncio.wait_for(
            asyncio.to_thread(func, *args), timeout=self.io_timeout_seconds
        )

    # =========================================================================
    # Cycle
    # =========================================================================

    async def scan(
        self, offset: DeadlineOffset, kind: EntityKind, now: datetime
    ) -> list[DeadlineEntity]:
        """Scan one (offset, kind) pair.

        Raises:
            ScanFailure: On storage error or timeout
        """
        try:
            return await self._in_thread(self._scan_sync, offset, kind, now)
        except asyncio.TimeoutError as e:
            raise ScanFailure(
                kind.value, offset.days, f"timed out after {self.io_timeout_seconds}s"
            ) from e
        except Exception as e:
            raise ScanFailure(kind.value, offset.days, str(e)) from e

    async def lookup_recipients(
        self, entity: DeadlineEntity, recipient_ids: set[str]
    ) -> list[Recipient]:
        """Load users for recipient ids.

        Raises:
            ResolutionFailure: On storage error or timeout
        """
        try:
            return await self._in_thread(self._lookup_sync, recipient_ids)
        except asyncio.TimeoutError as e:
            raise ResolutionFailure(
                sorted(recipient_ids),
                f"user lookup for {entity.id} timed out after {self.io_timeout_seconds}s",
            ) from e
        except Exception as e:
            raise ResolutionFailure(
                sorted(recipient_ids), f"user lookup for {entity.id} failed: {e}"
            ) from e

    async def process_entity(
        self, entity: DeadlineEntity, offset: DeadlineOffset, report: CycleReport
    ) -> None:
        """Notify everyone interested in one entity for one offset."""
        recipient_ids = self.resolver.resolve(entity)
        if not recipient_ids:
            report.entities_skipped += 1
            return

        try:
            recipients = await self.lookup_recipients(entity, recipient_ids)
        except ResolutionFailure as e:
            logger.error(str(e))
            report.entities_failed += 1
            report.errors.append(str(e))
            return

        report.recipients_dropped += len(recipient_ids) - len(recipients)
        content = build_content(entity, offset)

        for recipient in recipients:
            outcome = await self.dispatcher.deliver(recipient, entity, offset, content)

            if outcome.in_app == InAppStatus.CREATED:
                report.notifications_created += 1
            elif outcome.in_app == InAppStatus.EXISTING:
                report.notifications_existing += 1
            else:
                report.store_failures += 1
                report.errors.append(
                    f"store failed for {recipient.id} on {entity.id}: {outcome.error}"
                )

            if outcome.email == EmailStatus.SENT:
                report.emails_sent += 1
            elif outcome.email == EmailStatus.FAILED:
                report.email_failures += 1

    async def process_pair(
        self,
        offset: DeadlineOffset,
        kind: EntityKind,
        now: datetime,
        report: CycleReport,
    ) -> None:
        """Scan and notify for one (offset, kind) pair."""
        try:
            entities = await self.scan(offset, kind, now)
        except ScanFailure as e:
            logger.error(f"Error checking {kind.value} deadlines ({offset.days} days): {e.reason}")
            report.pairs_failed += 1
            report.errors.append(str(e))
            return

        report.pairs_scanned += 1
        report.entities_matched += len(entities)

        for entity in entities:
            try:
                await self.process_entity(entity, offset, report)
            except Exception as e:
                logger.exception(
                    f"Error processing {kind.value} {entity.id} ({offset.days} days): {e}"
                )
                report.entities_failed += 1
                report.errors.append(f"{kind.value} {entity.id}: {e}")

    async def _run_all(self, now: datetime, report: CycleReport) -> None:
        for kind in ENTITY_KINDS:
            for offset in self.config.offsets:
                await self.process_pair(offset, kind, now, report)

    async def run_cycle(self) -> CycleReport:
        """Run one full scan-and-notify cycle.

        Returns:
            CycleReport with counters. Partial when the cycle timed out.

        Raises:
            ConfigurationError: Only for configuration problems
        """
        now = self.clock()
        if now.tzinfo is None:
            raise ConfigurationError("Clock must return timezone-aware datetimes")

        report = CycleReport(started_at=now)
        self._active_runs += 1
        logger.info("Running deadline check...")
        try:
            await asyncio.wait_for(
                self._run_all(now, report), timeout=self.cycle_timeout_seconds
            )
        except asyncio.TimeoutError:
            report.timed_out = True
            logger.error(
                f"Deadline check exceeded {self.cycle_timeout_seconds}s and was stopped"
            )
        finally:
            self._active_runs -= 1
            report.finished_at = self.clock()
            self.last_report = report

        logger.info(
            f"Deadline check completed: {report.notifications_created} created, "
            f"{report.notifications_existing} already existed, "
            f"{report.emails_sent} emails sent, {report.email_failures} email failures, "
            f"{report.pairs_failed} failed scans"
        )
        return report
