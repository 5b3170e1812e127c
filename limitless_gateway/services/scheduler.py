"""
Cache maintenance scheduler.

Runs two APScheduler interval jobs on the running event loop:
- an expiry sweep that evicts entries past their TTL
- a periodic cache statistics report

Both are housekeeping only: CacheStore.get checks expiry on its own.
"""

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from loguru import logger

from limitless_gateway.services.cache import CacheStats, CacheStore


class CacheMaintenanceScheduler:
    """Periodic sweep and stats reporting for a CacheStore."""

    SWEEP_JOB_ID = "cache_sweep_job"
    REPORT_JOB_ID = "cache_stats_job"

    def __init__(
        self,
        cache: CacheStore,
        sweep_interval: float = 600,
        report_interval: float | None = 300,
    ):
        self.cache = cache
        self.sweep_interval = sweep_interval
        self.report_interval = report_interval
        self.scheduler = AsyncIOScheduler()
        self._is_running = False

    async def sweep_job(self) -> None:
        """Expiry sweep task."""
        try:
            self.sweep_now()
        except Exception as e:
            logger.error(f"Error in scheduled cache sweep: {e}")

    async def report_job(self) -> None:
        """Stats report task."""
        try:
            self.report_now()
        except Exception as e:
            logger.error(f"Error in scheduled cache stats report: {e}")

    def start(self) -> None:
        """Start the scheduler. Must be called with an event loop running."""
        if self._is_running:
            logger.warning("Cache maintenance scheduler is already running")
            return

        self.scheduler.add_job(
            self.sweep_job,
            trigger="interval",
            seconds=self.sweep_interval,
            id=self.SWEEP_JOB_ID,
            name="Cache Expiry Sweep",
            replace_existing=True,
        )

        if self.report_interval:
            self.scheduler.add_job(
                self.report_job,
                trigger="interval",
                seconds=self.report_interval,
                id=self.REPORT_JOB_ID,
                name="Cache Stats Report",
                replace_existing=True,
            )

        self.scheduler.start()
        self._is_running = True

        logger.info(
            f"Cache maintenance scheduler started: sweeping every {self.sweep_interval}s"
        )

    def stop(self) -> None:
        """Stop the scheduler."""
        if not self._is_running:
            logger.warning("Cache maintenance scheduler is not running")
            return

        self.scheduler.shutdown(wait=False)
        self._is_running = False
        logger.info("Cache maintenance scheduler stopped")

    def is_running(self) -> bool:
        """Check whether the scheduler is running."""
        return self._is_running

    def sweep_now(self) -> int:
        """Run one expiry sweep immediately."""
        removed = self.cache.cleanup_expired()
        if removed:
            logger.info(f"Cache sweep removed {removed} expired entries")
        return removed

    def report_now(self) -> CacheStats:
        """Log cache statistics immediately."""
        stats = self.cache.stats()
        logger.info(
            f"Cache stats: {stats.keys} keys, {stats.hits} hits, "
            f"{stats.misses} misses, Hit rate: {stats.hit_rate:.2f}"
        )
        return stats
