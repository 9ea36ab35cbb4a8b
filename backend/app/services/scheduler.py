"""Background job scheduler.

Runs periodic jobs for:
- AI response cache eviction (every ``ai_cache_cleanup_minutes``)
"""

import logging
from datetime import datetime

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from app.config import settings
from app.services.ai_cache import AICache

logger = logging.getLogger(__name__)

AI_CACHE_CLEANUP_JOB_ID = "ai_cache_cleanup"

# Global scheduler instance
_scheduler: AsyncIOScheduler | None = None


async def clear_expired_ai_cache_job(cache: AICache) -> int:
    """Periodic job: drop expired AI cache entries."""
    try:
        removed = cache.clear_expired()
        if removed:
            logger.info("AI cache cleanup job removed %d entries", removed)
        return removed
    except Exception:
        logger.error("AI cache cleanup job failed", exc_info=True)
        return 0


def start_scheduler(cache: AICache) -> AsyncIOScheduler:
    """Start the background job scheduler with all periodic jobs."""
    global _scheduler

    if _scheduler is not None:
        logger.warning("Scheduler already running")
        return _scheduler

    _scheduler = AsyncIOScheduler()

    _scheduler.add_job(
        clear_expired_ai_cache_job,
        IntervalTrigger(minutes=settings.ai_cache_cleanup_minutes),
        args=[cache],
        id=AI_CACHE_CLEANUP_JOB_ID,
        name="Evict expired AI cache entries",
        replace_existing=True,
    )

    _scheduler.start()
    logger.info("Background scheduler started with %d jobs", len(_scheduler.get_jobs()))

    return _scheduler


def stop_scheduler() -> None:
    """Stop the background job scheduler."""
    global _scheduler

    if _scheduler is not None:
        _scheduler.shutdown(wait=False)
        _scheduler = None
        logger.info("Background scheduler stopped")


def get_scheduler() -> AsyncIOScheduler | None:
    """Get the current scheduler instance."""
    return _scheduler


def trigger_job_now(job_id: str) -> bool:
    """Manually trigger a scheduled job immediately.

    Returns:
        True if job was triggered, False if job not found
    """
    if _scheduler is None:
        logger.error("Cannot trigger job - scheduler not running")
        return False

    job = _scheduler.get_job(job_id)
    if job is None:
        logger.error("Job not found: %s", job_id)
        return False

    job.modify(next_run_time=datetime.now(_scheduler.timezone))
    logger.info("Manually triggered job: %s", job_id)
    return True
