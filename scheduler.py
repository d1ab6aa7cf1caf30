import logging
from contextlib import AbstractContextManager
from datetime import date
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.orm import Session

from config import get_settings
from database import session_scope
from recurrence import BillingEngine

logger = logging.getLogger(__name__)

SessionFactory = Callable[[], AbstractContextManager[Session]]

# (job id, trigger, source label, misfire grace seconds)
JOBS = (
    ("subscriptions_daily", CronTrigger(hour=3, minute=15), "daily_03:15", 3600),
    ("subscriptions_hourly", IntervalTrigger(hours=1), "hourly_safety_net", 300),
)


class SchedulerManager:
    """Keeps subscription billing dates current in the background."""

    def __init__(self, session_factory: SessionFactory = session_scope) -> None:
        settings = get_settings()
        self.enabled = settings.scheduler_enabled
        self.session_factory = session_factory
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def run_once(self, source: str = "manual", today: Optional[date] = None) -> int:
        with self.session_factory() as session:
            count = BillingEngine(session).roll_forward_due(today)
        logger.info(f"scheduler_run: source={source} subscriptions_advanced={count}")
        return count

    def start(self) -> None:
        if not self.enabled:
            logger.info("scheduler_disabled: FINANCE_SCHEDULER_ENABLED is off")
            return

        self.run_once("startup")
        for job_id, trigger, source, grace in JOBS:
            self.scheduler.add_job(
                self.run_once,
                trigger,
                args=[source],
                id=job_id,
                replace_existing=True,
                misfire_grace_time=grace,
            )
        self.scheduler.start()
        logger.info(f"scheduler_started: jobs={len(JOBS)}")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("scheduler_stopped")
