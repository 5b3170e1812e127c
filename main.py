"""
Limitless Gateway main entry point.
Builds the caching API client, starts cache maintenance and keeps the process alive.
"""

import asyncio
import sys

from loguru import logger

from limitless_gateway.datasource.lifelogs import LifelogSource
from limitless_gateway.services import (
    CacheMaintenanceScheduler,
    CacheStore,
    ServiceClient,
    ServiceError,
)
from limitless_gateway.settings import global_settings


async def main() -> int:
    """Main function."""
    settings = global_settings

    if not settings.api_key:
        logger.error("LIMITLESS_API_KEY environment variable is not set")
        logger.error("Please set it to your Limitless API key")
        return 1

    logger.info("Starting Limitless Gateway...")
    logger.info("\n" + settings.describe())

    cache = CacheStore(max_keys=settings.cache_max_keys)
    client = ServiceClient.from_settings(settings, cache=cache)
    maintenance = CacheMaintenanceScheduler(
        cache,
        sweep_interval=settings.cache_check_period,
        report_interval=settings.cache_stats_interval,
    )

    try:
        maintenance.start()

        # Warm the cache with the most recent lifelogs
        logger.info("Performing initial lifelog fetch...")
        source = LifelogSource(
            client,
            default_page_size=settings.default_page_size,
            max_limit=settings.max_lifelog_limit,
        )
        try:
            lifelogs = await source.fetch()
            logger.info(f"Initial fetch completed: {len(lifelogs)} lifelogs cached")
        except ServiceError as e:
            logger.warning(f"Initial fetch failed [{e.kind.value}]: {e.message}")

        logger.info("Limitless Gateway is running. Press Ctrl+C to stop.")
        while True:
            await asyncio.sleep(60)

    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("Received interrupt signal, shutting down...")
    finally:
        if maintenance.is_running():
            maintenance.stop()
        maintenance.report_now()

        await client.close()
        logger.info("Limitless Gateway stopped")

    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        sys.exit(0)
