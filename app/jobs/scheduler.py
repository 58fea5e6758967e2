"""
APScheduler Configuration

Runs periodic maintenance of derived data inside the API process. The only
job recomputes reliability scores that have gone stale.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor

from app.config import settings
from app.jobs import score_jobs

logger = logging.getLogger(__name__)

scheduler = AsyncIOScheduler(
    jobstores={'default': MemoryJobStore()},
    executors={'default': AsyncIOExecutor()},
    job_defaults={
        'coalesce': True,  # Collapse missed runs into one
        'max_instances': 1,
        'misfire_grace_time': 60,
    },
    timezone=settings.SCHEDULER_TIMEZONE
)


def _registered_jobs() -> Dict[str, Callable[[], Awaitable[Dict[str, Any]]]]:
    return {
        'refresh_stale_scores': score_jobs.refresh_stale_scores,
    }


async def run_job(job_name: str):
    """
    Entry point called by the scheduler.
    A failed run is logged and the schedule continues.
    """
    try:
        result = await _registered_jobs()[job_name]()
        logger.info(f"Job '{job_name}' completed: {result}")
    except Exception as e:
        logger.error(f"Job '{job_name}' failed: {e}")


def start_scheduler():
    """Register the score refresh job and start the scheduler."""
    if scheduler.running:
        return

    scheduler.add_job(
        run_job,
        'interval',
        minutes=settings.SCORE_REFRESH_INTERVAL_MINUTES,
        args=['refresh_stale_scores'],
        id='refresh_stale_scores',
        name='Refresh Stale Reliability Scores',
        replace_existing=True,
    )
    scheduler.start()

    for job in scheduler.get_jobs():
        logger.info(f"Scheduled job: {job.name} - next run {job.next_run_time}")


def shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=True)
        logger.info("Background job scheduler stopped")


def get_job_status() -> List[Dict[str, Any]]:
    """Scheduled jobs with their next run time."""
    return [
        {
            'id': job.id,
            'name': job.name,
            'next_run_time': str(job.next_run_time) if job.next_run_time else None,
            'trigger': str(job.trigger),
        }
        for job in scheduler.get_jobs()
    ]
