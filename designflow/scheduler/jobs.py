"""
Recurring sync scheduler.

Runs one job, the full portfolio sync, on a fixed interval. The scheduler is
an owned object: the application lifespan constructs it, starts it and stops
it. A failing run is logged and the next run still happens.
"""

import logging
from typing import Any, Awaitable, Callable, Optional
from datetime import datetime

import pytz
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from config import settings

logger = logging.getLogger(__name__)

SYNC_JOB_ID = "sync_all_projects"


class SyncScheduler:
    """
    Two states: stopped and running.

    start() and stop() are idempotent. The job never overlaps itself
    (max_instances=1) and missed runs collapse into one (coalesce).
    """

    def __init__(
        self,
        sync_fn: Callable[[], Awaitable[Any]],
        interval_ms: int,
        timezone: Optional[str] = None,
    ):
        if interval_ms <= 0:
            raise ValueError(f"Sync interval must be positive, got {interval_ms}ms")
        self.sync_fn = sync_fn
        self.interval_ms = interval_ms
        self.timezone = pytz.timezone(timezone or settings.timezone)
        self.scheduler: Optional[AsyncIOScheduler] = None

    def start(self) -> None:
        """Start the recurring sync. No effect if already running."""
        if self.is_running():
            return

        self.scheduler = AsyncIOScheduler(timezone=self.timezone)
        self.scheduler.add_job(
            self._sync_job,
            IntervalTrigger(seconds=self.interval_ms / 1000, timezone=self.timezone),
            id=SYNC_JOB_ID,
            name="Sync All Tracked Projects",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        logger.info(f"Sync scheduler started (interval: {self.interval_ms}ms)")

    def stop(self) -> None:
        """Cancel future runs. An in-flight run is not interrupted."""
        if self.scheduler is None:
            return
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        self.scheduler = None
        logger.info("Sync scheduler stopped")

    def is_running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    async def _sync_job(self) -> None:
        """Run the sync callback; failures are logged, never raised."""
        logger.debug("Running scheduled sync")
        try:
            await self.sync_fn()
        except Exception as e:
            logger.error(f"Error in scheduled sync: {e}", exc_info=True)

    def trigger_now(self) -> bool:
        """Move the next run to now."""
        if not self.is_running():
            return False

        job = self.scheduler.get_job(SYNC_JOB_ID)
        if job:
            job.modify(next_run_time=datetime.now(self.timezone))
            return True

        return False

    def get_job_status(self) -> dict:
        """Running state and next run time of the sync job."""
        if not self.is_running():
            return {"running": False}

        job = self.scheduler.get_job(SYNC_JOB_ID)
        return {
            "running": True,
            "interval_ms": self.interval_ms,
            "next_run": job.next_run_time.isoformat() if job and job.next_run_time else None,
        }
