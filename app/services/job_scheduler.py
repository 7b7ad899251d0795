# app/services/job_scheduler.py

import logging
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config.database import settings
from app.services.reminder_service import ReminderDispatcher

logger = logging.getLogger("reminders")

REMINDER_JOB_ID = "appointment-reminders"


class JobScheduler:
    """Owns the background jobs; started and stopped by the application lifespan."""

    def __init__(self, dispatcher: Optional[ReminderDispatcher] = None, timezone: Optional[str] = None):
        self.dispatcher = dispatcher or ReminderDispatcher()
        self.timezone = timezone or settings.timezone
        self._scheduler: Optional[BackgroundScheduler] = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None and self._scheduler.running

    def start(self) -> None:
        if self.running:
            return

        self._scheduler = BackgroundScheduler(
            timezone=self.timezone,
            job_defaults={
                "coalesce": True,
                "max_instances": 1,
                "misfire_grace_time": 300,
            },
        )
        self._scheduler.add_job(
            self.dispatcher.run_once,
            CronTrigger(
                hour=settings.reminder_hour,
                minute=settings.reminder_minute,
                timezone=self.timezone,
            ),
            id=REMINDER_JOB_ID,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(
            f"Reminder job scheduled daily at {settings.reminder_hour:02d}:"
            f"{settings.reminder_minute:02d} {self.timezone}"
        )

    def shutdown(self) -> None:
        if self.running:
            self._scheduler.shutdown(wait=False)
            logger.info("Background scheduler stopped")
        self._scheduler = None

    def run_reminders_now(self):
        return self.dispatcher.run_once()


job_scheduler = JobScheduler()
