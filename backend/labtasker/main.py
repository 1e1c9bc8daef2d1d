"""LabTasker - FastAPI Application.

Laboratory operations backend. Runs the daily deadline notification
cycle and exposes notifications plus an admin trigger over HTTP.
"""

import hmac
import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, HTTPException, Depends, Header, Query, Request
from pydantic import BaseModel
from sqlalchemy.orm import Session

from .config import get_settings
from .deadline_notifier import DeadlineNotificationService
from .errors import ConfigurationError
from .models import Notification, init_db, get_db
from .notification_config import FireSchedule
from .notification_store import NotificationStore
from .scheduler import DeadlineScheduler

# Configure logging
settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

store = NotificationStore()


# =============================================================================
# App Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    # Startup
    logger.info("Starting LabTasker...")
    init_db()

    service = DeadlineNotificationService.from_settings(settings)
    schedule = FireSchedule.parse(settings.deadline_check_time, settings.timezone)
    deadline_scheduler = DeadlineScheduler(service, schedule)

    app.state.deadline_service = service
    app.state.deadline_scheduler = deadline_scheduler

    if settings.scheduler_enabled:
        deadline_scheduler.start()
    else:
        logger.info("Deadline scheduler disabled via settings (SCHEDULER_ENABLED=false)")

    yield

    # Shutdown
    deadline_scheduler.shutdown()
    logger.info("LabTasker stopped")


app = FastAPI(
    title="LabTasker",
    description="Laboratory operations with deadline notifications",
    version="0.1.0",
    lifespan=lifespan,
)


# =============================================================================
# Dependencies
# =============================================================================


def get_deadline_scheduler(request: Request) -> DeadlineScheduler:
    deadline_scheduler = getattr(request.app.state, "deadline_scheduler", None)
    if deadline_scheduler is None:
        raise HTTPException(status_code=503, detail="Deadline scheduler not initialized")
    return deadline_scheduler


def get_admin_token() -> str:
    return settings.admin_api_token


def require_admin(
    x_admin_token: Optional[str] = Header(None),
    admin_token: str = Depends(get_admin_token),
) -> None:
    """Allow only callers presenting the configured admin token."""
    if not admin_token:
        raise HTTPException(status_code=503, detail="Admin access is not configured")
    if not x_admin_token:
        raise HTTPException(status_code=401, detail="Missing admin token")
    if not hmac.compare_digest(x_admin_token.encode(), admin_token.encode()):
        raise HTTPException(status_code=403, detail="Invalid admin token")


# =============================================================================
# Pydantic Models
# =============================================================================


class NotificationResponse(BaseModel):
    id: int
    recipient_id: str
    title: str
    message: str
    type: str
    priority: str
    category: str
    related_entity_type: Optional[str]
    related_entity_id: Optional[str]
    offset_days: Optional[int]
    metadata: dict
    is_read: bool
    created_at: Optional[str]


class DeadlineNotificationsResponse(BaseModel):
    total: int
    notifications: list[NotificationResponse]


class DeadlineCheckResponse(BaseModel):
    success: bool
    message: str
    report: Optional[dict] = None


def to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=notification.id,
        recipient_id=notification.recipient_id,
        title=notification.title,
        message=notification.message,
        type=notification.type,
        priority=notification.priority,
        category=notification.category,
        related_entity_type=notification.related_entity_type,
        related_entity_id=notification.related_entity_id,
        offset_days=notification.offset_days,
        metadata=notification.meta or {},
        is_read=bool(notification.is_read),
        created_at=notification.created_at.isoformat() if notification.created_at else None,
    )


# =============================================================================
# API Routes
# =============================================================================


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    deadline_scheduler = getattr(request.app.state, "deadline_scheduler", None)
    scheduler_info = None
    if deadline_scheduler is not None:
        next_run = deadline_scheduler.next_run_time() if deadline_scheduler.running else None
        scheduler_info = {
            "running": deadline_scheduler.running,
            "cycle_state": deadline_scheduler.service.state.value,
            "next_run": next_run.isoformat() if next_run else None,
        }
    return {
        "status": "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "deadline_scheduler": scheduler_info,
    }


@app.post(
    "/admin/deadline-check",
    response_model=DeadlineCheckResponse,
    dependencies=[Depends(require_admin)],
)
async def run_deadline_check(
    deadline_scheduler: DeadlineScheduler = Depends(get_deadline_scheduler),
):
    """Run the deadline notification cycle now."""
    try:
        report = await deadline_scheduler.trigger_now()
    except ConfigurationError as e:
        logger.error(f"Manual deadline check failed: {e}")
        raise HTTPException(status_code=500, detail="Deadline check failed")
    except Exception:
        logger.exception("Manual deadline check failed")
        raise HTTPException(status_code=500, detail="Deadline check failed")

    return DeadlineCheckResponse(
        success=True,
        message="Deadline check completed",
        report=report.to_dict(),
    )


@app.get("/notifications", response_model=list[NotificationResponse])
async def list_notifications(
    recipient_id: str,
    unread_only: bool = False,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """List a user's notifications, newest first."""
    notifications = store.list_for_recipient(
        db, recipient_id, unread_only=unread_only, limit=limit
    )
    return [to_response(n) for n in notifications]


@app.get(
    "/notifications/deadlines",
    response_model=DeadlineNotificationsResponse,
    dependencies=[Depends(require_admin)],
)
async def list_deadline_notifications(
    limit: int = Query(10, ge=1, le=200),
    db: Session = Depends(get_db),
):
    """Most recent deadline reminders and the total count."""
    notifications = store.recent_deadline_notifications(db, limit=limit)
    return DeadlineNotificationsResponse(
        total=store.count_deadline_notifications(db),
        notifications=[to_response(n) for n in notifications],
    )
