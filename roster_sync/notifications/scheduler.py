"""APScheduler integration for periodic notification sweeps.

Provides scheduler setup and a FastAPI lifespan context that runs the
NotificationSweeper on an interval.
"""

from contextlib import asynccontextmanager
from datetime import UTC
from typing import TYPE_CHECKING

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from roster_sync.config import settings

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from roster_sync.notifications.sweeper import NotificationSweeper

logger = structlog.get_logger()

SWEEP_JOB_ID = "notification_sweeper"

# Module-level scheduler instance
_scheduler: AsyncIOScheduler | None = None


def get_scheduler() -> AsyncIOScheduler:
    """Get or create the scheduler instance.

    Returns:
        AsyncIOScheduler instance
    """
    global _scheduler
    if _scheduler is None:
        _scheduler = AsyncIOScheduler(timezone=UTC)
    return _scheduler


def scheduler_running() -> bool:
    """Whether the sweep scheduler exists and is running."""
    return _scheduler is not None and _scheduler.running


def reset_scheduler() -> None:
    """Reset the scheduler instance (for testing)."""
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
    _scheduler = None


@asynccontextmanager
async def notification_scheduler_lifespan(
    sweeper: "NotificationSweeper",
    interval_minutes: int | None = None,
) -> "AsyncGenerator[None, None]":
    """Lifespan context manager for the notification scheduler.

    Starts a job sweeping pending shift changes every
    ``interval_minutes`` and shuts the scheduler down on exit.

    Args:
        sweeper: Sweeper to run
        interval_minutes: Sweep interval. Defaults to settings.
    """
    scheduler = get_scheduler()
    minutes = interval_minutes or settings.notification_sweep_interval_minutes

    scheduler.add_job(
        run_notification_sweep,
        "interval",
        minutes=minutes,
        args=[sweeper],
        id=SWEEP_JOB_ID,
        replace_existing=True,
        max_instances=1,  # a long sweep must not overlap the next one
    )

    logger.info("Starting notification scheduler", interval_minutes=minutes)
    scheduler.start()

    try:
        yield
    finally:
        logger.info("Shutting down notification scheduler")
        scheduler.shutdown(wait=False)


async def run_notification_sweep(sweeper: "NotificationSweeper") -> None:
    """Scheduled job: run one sweep and log the outcome.

    Errors are logged rather than raised so the job keeps its schedule.
    """
    try:
        result = await sweeper.sweep()
        if result.processed or result.failed_users:
            logger.info(
                "Notification sweep processed changes",
                processed=result.processed,
                failed_users=result.failed_users,
            )
    except Exception as e:
        logger.error("Notification sweep failed", error=str(e))
