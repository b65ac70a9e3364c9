"""
Background job scheduler.

APScheduler AsyncIOScheduler running on the application's event loop.
Jobs are registered and started on FastAPI startup.
"""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from vehiculos.ingestion.coordinator import PriceIngestionCoordinator

logger = logging.getLogger(__name__)

PRICE_JOB_ID = "price_feed_processing"

_scheduler: AsyncIOScheduler | None = None


async def scheduled_price_processing(processor: PriceIngestionCoordinator) -> None:
    """
    Periodic price feed job.

    Skips the tick when a run is still in flight. Exceptions are logged
    and never re-raised into the scheduler.
    """
    if processor.is_currently_processing():
        logger.debug("Price processing still running, skipping scheduled tick")
        return
    try:
        logger.info("Starting scheduled price processing")
        await processor.start_processing()
    except Exception:
        logger.exception("Scheduled price processing failed")


def get_scheduler() -> AsyncIOScheduler | None:
    return _scheduler


def start_scheduler(processor: PriceIngestionCoordinator, interval_seconds: int) -> AsyncIOScheduler:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        return _scheduler

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        scheduled_price_processing,
        trigger=IntervalTrigger(seconds=interval_seconds),
        args=[processor],
        id=PRICE_JOB_ID,
        name="Price feed processing",
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
    scheduler.start()
    _scheduler = scheduler
    logger.info("Scheduled price processing every %d seconds", interval_seconds)
    return scheduler


def shutdown_scheduler() -> None:
    global _scheduler
    if _scheduler is not None and _scheduler.running:
        _scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    _scheduler = None
