import logging
from datetime import datetime
from typing import Callable, List, Union

from .collection_dates import friendly_date, local_date, now_london, tomorrow, LONDON
from .data_fetchers.base_fetcher import BinDataFetcher
from .data_models import ErrorResult, NextCollections

logger = logging.getLogger(__name__)

NO_COLLECTIONS_ERROR = "No collections found for bin ID"


async def get_next_collections(fetcher: BinDataFetcher, property_id,
                               clock: Callable[[], datetime] = now_london) -> Union[NextCollections, ErrorResult]:
    """
    Summarises the soonest collection for a property.

    Every category whose next collection falls at exactly the soonest
    timestamp is included in `bins`, not just the first one.
    """
    schedule = await fetcher.get_schedule(property_id)
    if isinstance(schedule, ErrorResult):
        return schedule
    if not schedule:
        logger.warning(f"No collections found for {property_id}")
        return ErrorResult(error=NO_COLLECTIONS_ERROR, id=property_id)

    entries = sorted(schedule.values(), key=lambda entry: entry.next_collection_utc)
    soonest = entries[0].next_collection_utc
    bins = [entry.category for entry in entries if entry.next_collection_utc == soonest]

    local_soonest = soonest.astimezone(LONDON)
    return NextCollections(
        next_collection_date_utc=soonest,
        next_collection_date=local_soonest.strftime('%Y-%m-%d'),
        next_collection_date_day=local_soonest.strftime('%A'),
        next_collection_date_friendly=friendly_date(soonest),
        is_tomorrow=local_date(soonest) == tomorrow(clock()),
        bins=bins,
    )


async def get_bins_for_tomorrow(fetcher: BinDataFetcher, property_id,
                                clock: Callable[[], datetime] = now_london) -> Union[List[str], ErrorResult]:
    """Returns every category whose next collection is tomorrow (Europe/London)."""
    schedule = await fetcher.get_schedule(property_id)
    if isinstance(schedule, ErrorResult):
        return schedule

    target = tomorrow(clock())
    bins_for_tomorrow = []
    for category, entry in schedule.items():
        if local_date(entry.next_collection_utc) == target:
            bins_for_tomorrow.append(category)
    return bins_for_tomorrow
