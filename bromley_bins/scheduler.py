"""
Cache pre-warming.

An APScheduler AsyncIOScheduler runs one interval job that refreshes a fixed
list of property IDs. The job fires immediately when the scheduler starts and
then every `interval_seconds`. The FastAPI lifespan owns starting and shutting
down the scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Iterable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .collection_dates import LONDON
from .data_fetchers.base_fetcher import BinDataFetcher
from .data_models import ErrorResult

logger = logging.getLogger(__name__)

DEFAULT_PREWARM_INTERVAL_SECONDS = 450
PREWARM_JOB_ID = "prewarm_cache"


async def prewarm_cache(fetcher: BinDataFetcher, property_ids: Iterable[int]) -> int:
    """
    Looks up every ID concurrently so the results land in the cache.

    Failures are logged and never raised. Returns the number of IDs that
    were fetched successfully.
    """
    ids = list(property_ids)
    if not ids:
        logger.info("Auto-caching bins: nothing configured")
        return 0

    logger.info(f"Auto-caching bins: {ids}")
    results = await asyncio.gather(*(fetcher.get_schedule(bin_id) for bin_id in ids), return_exceptions=True)

    succeeded = 0
    for bin_id, result in zip(ids, results):
        if isinstance(result, BaseException):
            logger.error(f"Auto-caching bin {bin_id} raised: {result!r}")
        elif isinstance(result, ErrorResult):
            logger.warning(f"Auto-caching bin {bin_id} failed: {result.error} ({result.cause})")
        else:
            succeeded += 1
    logger.info(f"Auto-caching complete: {succeeded}/{len(ids)} succeeded")
    return succeeded


def create_prewarm_scheduler(fetcher: BinDataFetcher, property_ids: Iterable[int],
                             interval_seconds: int = DEFAULT_PREWARM_INTERVAL_SECONDS) -> AsyncIOScheduler:
    """Builds (but does not start) the scheduler that keeps the cache warm."""
    scheduler = AsyncIOScheduler(timezone=LONDON)
    scheduler.add_job(
        prewarm_cache,
        trigger=IntervalTrigger(seconds=interval_seconds, timezone=LONDON),
        args=[fetcher, list(property_ids)],
        id=PREWARM_JOB_ID,
        name="Pre-warm bin schedule cache",
        next_run_time=datetime.now(LONDON),
        max_instances=1,
        coalesce=True,
        replace_existing=True,
    )
    logger.info(f"Pre-warm job registered: every {interval_seconds}s")
    return scheduler
