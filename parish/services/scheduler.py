"""Background scheduler opening the monthly dues period."""

import logging
from datetime import date
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from parish.core.config import settings
from parish.core.errors import RepositoryError
from parish.db.base import SessionLocal
from parish.services.dues import DuesRepository

logger = logging.getLogger(__name__)

scheduler: AsyncIOScheduler | None = None

OPEN_PERIOD_JOB_ID = "open_dues_period"


def open_current_dues_period(today: Optional[date] = None) -> int:
    """Create this month's unpaid dues records for communicant members."""
    today = today or date.today()
    db = SessionLocal()
    try:
        created = DuesRepository(db).open_period(today.month, today.year, settings.DEFAULT_DUES_AMOUNT)
        logger.info("Scheduled dues opening for %02d/%d created %d record(s)", today.month, today.year, created)
        return created
    except RepositoryError:
        logger.exception("Error opening dues period %02d/%d", today.month, today.year)
        return 0
    finally:
        db.close()


# ---------------------------------------------------------------------------
# Scheduler lifecycle helpers
# ---------------------------------------------------------------------------

def start_scheduler() -> None:
    """Create and start the background scheduler."""
    global scheduler
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        open_current_dues_period,
        trigger=CronTrigger(day=1, hour=0, minute=5),
        id=OPEN_PERIOD_JOB_ID,
        name="Open monthly dues period",
        replace_existing=True,
    )
    scheduler.start()
    logger.info("Background scheduler started")


def stop_scheduler() -> None:
    """Shut down the background scheduler gracefully."""
    global scheduler
    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Background scheduler stopped")
    scheduler = None


def get_scheduler_status() -> dict:
    if not scheduler or not scheduler.running:
        return {"running": False, "jobs": []}
    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
        })
    return {"running": True, "jobs": jobs}
