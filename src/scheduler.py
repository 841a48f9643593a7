"""
Scheduler module for the daily send cycle.

Sets up APScheduler to run the evaluate-and-send cycle once a day
(default 09:00 server time) inside the web server process.
"""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from src.config import SCHEDULE_HOUR, SCHEDULE_MINUTE
from src.pipeline import run_cycle
from src.storage.base import Storage

logger = logging.getLogger(__name__)

JOB_ID = "daily_send_cycle"

# Global scheduler instance
scheduler: Optional[BackgroundScheduler] = None


def daily_check(storage: Storage = None) -> None:
    """Job body: run one cycle; failures are logged, never raised into the scheduler."""
    logger.info("Running daily check...")
    try:
        result = run_cycle(storage=storage)
    except Exception as e:
        logger.error("Daily check crashed: %s", e, exc_info=True)
        return
    logger.info("Daily check finished: %s", result.status)


def start_scheduler(
    hour: int = None,
    minute: int = None,
    job: Callable[..., None] = daily_check,
    storage: Storage = None,
) -> BackgroundScheduler:
    """
    Start the background scheduler with the daily job.

    Calling it again while running returns the existing scheduler.

    Args:
        hour: Hour of day to run. Defaults to config.SCHEDULE_HOUR.
        minute: Minute to run. Defaults to config.SCHEDULE_MINUTE.
        job: Callable to schedule (default: daily_check).
        storage: Backend handed to the job, shared with the web app.
    """
    global scheduler

    if scheduler is not None and scheduler.running:
        logger.warning("Scheduler is already running")
        return scheduler

    hour = SCHEDULE_HOUR if hour is None else hour
    minute = SCHEDULE_MINUTE if minute is None else minute

    scheduler = BackgroundScheduler()
    scheduler.add_job(
        job,
        trigger=CronTrigger(hour=hour, minute=minute),
        kwargs={"storage": storage} if storage is not None else None,
        id=JOB_ID,
        name="Daily digest eligibility check",
        replace_existing=True,
        max_instances=1,  # Prevent overlapping executions
        misfire_grace_time=3600,  # Still run up to 1 hour late (e.g. after a restart)
        coalesce=True,  # Combine multiple missed runs into one
    )
    scheduler.start()
    logger.info("Scheduler started: daily check at %02d:%02d", hour, minute)
    return scheduler


def stop_scheduler() -> None:
    """Stop the scheduler if it is running."""
    global scheduler

    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    else:
        logger.warning("Scheduler is not running")
    scheduler = None
