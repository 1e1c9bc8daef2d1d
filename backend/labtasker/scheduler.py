"""Daily trigger for the deadline notification cycle."""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .deadline_notifier import CycleReport, DeadlineNotificationService
from .notification_config import FireSchedule

logger = logging.getLogger(__name__)

JOB_ID = "deadline_notifications"


class DeadlineScheduler:
    """Fires run_cycle() once a day and on demand.

    The timer and the manual trigger call the same run_cycle(). They are
    not mutually exclusive; the notification unique constraint keeps an
    overlapping run from notifying anyone twice.
    """

    def __init__(
        self,
        service: DeadlineNotificationService,
        schedule: FireSchedule,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.service = service
        self.schedule = schedule
        self.scheduler = scheduler or AsyncIOScheduler(timezone=schedule.tzinfo)

    def build_trigger(self) -> CronTrigger:
        return CronTrigger(
            hour=self.schedule.time_of_day.hour,
            minute=self.schedule.time_of_day.minute,
            timezone=self.schedule.tzinfo,
        )

    async def _scheduled_run(self) -> None:
        logger.info("Running daily deadline check...")
        await self.service.run_cycle()

    def start(self) -> None:
        """Register the daily job and start the scheduler."""
        if self.scheduler.running:
            logger.info("Deadline scheduler already running, skipping start")
            return

        self.scheduler.add_job(
            self._scheduled_run,
            trigger=self.build_trigger(),
            id=JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(
            f"Deadline scheduler started: daily at "
            f"{self.schedule.time_of_day:%H:%M} {self.schedule.timezone}"
        )

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Deadline scheduler stopped")

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def next_run_time(self):
        job = self.scheduler.get_job(JOB_ID)
        return job.next_run_time if job else None

    async def trigger_now(self) -> CycleReport:
        """Run a cycle immediately (admin "run deadline check now")."""
        logger.info("Running manual deadline check...")
        report = await self.service.run_cycle()
        logger.info("Manual deadline check completed")
        return report
