"""
Scheduled calendar sync.

Runs a sync for every user with a connected calendar, then sleeps for
SYNC_INTERVAL_MINUTES. A failed cycle is logged and retried after a short
backoff; per-user failures never stop the loop.
"""

import asyncio

from app.config import settings
from app.db.pool import db_pool
from app.features.calendar_sync.services.sync_service import calendar_sync_service
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


async def run_calendar_sync_cycle() -> dict:
    return await calendar_sync_service.sync_all_users(settings.CALENDAR_PROVIDER)


async def start_calendar_sync_scheduler() -> None:
    """Entry point for the `calendar_sync` worker job."""
    logger.info(
        "Starting calendar sync scheduler",
        interval_minutes=settings.SYNC_INTERVAL_MINUTES,
        provider=settings.CALENDAR_PROVIDER,
    )
    await db_pool.initialize()

    try:
        while True:
            try:
                summary = await run_calendar_sync_cycle()
                logger.info("Calendar sync cycle completed", **summary)

                await asyncio.sleep(settings.SYNC_INTERVAL_MINUTES * 60)

            except Exception as e:
                logger.error(
                    "Error in calendar sync scheduler", error=str(e), error_type=type(e).__name__
                )
                # Wait a bit before retrying to avoid tight error loops
                await asyncio.sleep(60)
    finally:
        await db_pool.close()


if __name__ == "__main__":
    asyncio.run(start_calendar_sync_scheduler())
