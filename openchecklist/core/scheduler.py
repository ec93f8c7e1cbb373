"""Background job scheduler for storage maintenance."""
import logging
from datetime import timedelta

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from openchecklist.checklists.files import FileStorage
from openchecklist.core.config import settings

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler()


def purge_staged_uploads_job():
    """Remove staged upload files abandoned by interrupted requests."""
    try:
        storage = FileStorage(settings.file_storage_dir)
        removed = storage.purge_stale(
            timedelta(minutes=settings.staged_upload_max_age_minutes)
        )
        logger.info(f"Staged upload purge completed, removed {removed}")
    except OSError as e:
        logger.error(f"Staged upload purge failed: {e}")


def start_scheduler():
    """Start the background scheduler."""
    scheduler.add_job(
        purge_staged_uploads_job,
        trigger=IntervalTrigger(minutes=settings.cleanup_interval_minutes),
        id="purge_staged_uploads",
        replace_existing=True,
    )
    scheduler.start()
    logger.info(
        f"Scheduler started, purging staged uploads every "
        f"{settings.cleanup_interval_minutes} minutes"
    )


def shutdown_scheduler():
    """Graceful shutdown."""
    scheduler.shutdown(wait=False)
    logger.info("Scheduler shut down")
