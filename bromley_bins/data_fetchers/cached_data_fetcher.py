import logging
from datetime import datetime, timedelta
from typing import Callable, Dict

from .base_fetcher import BinDataFetcher
from .bromley_bin_data import NO_ID_ERROR
from ..collection_dates import now_london
from ..data_models import CacheEntry, ErrorResult, ScheduleResult, parse_property_id

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(minutes=60)


class CachedBinData(BinDataFetcher):
    """
    In-memory caching layer for another BinDataFetcher.

    Entries are keyed by property ID and served while younger than `max_age`.
    Only successful lookups are stored; failures leave any existing entry
    untouched, so a stale schedule stays in the store until a refresh succeeds.

    Lookups are not coalesced: concurrent misses for the same ID each go to the
    underlying fetcher and the last one to finish wins.
    Callers get their own copy of a cached schedule.
    """

    def __init__(self, underlying_fetcher: BinDataFetcher,
                 clock: Callable[[], datetime] = now_london,
                 max_age: timedelta = DEFAULT_MAX_AGE):
        if not isinstance(underlying_fetcher, BinDataFetcher):
            raise TypeError(f"underlying_fetcher must be a BinDataFetcher, got {type(underlying_fetcher).__name__}")
        self._fetcher = underlying_fetcher
        self._clock = clock
        self.max_age = max_age
        self._entries: Dict[int, CacheEntry] = {}
        logger.info(f"CachedBinData initialized, wrapping {type(underlying_fetcher).__name__}")

    def __len__(self) -> int:
        return len(self._entries)

    def cache_contents(self) -> Dict[int, CacheEntry]:
        return dict(self._entries)

    def _fresh_entry(self, property_id: int):
        entry = self._entries.get(property_id)
        if entry is None:
            return None
        if self._clock() - entry.captured_at < self.max_age:
            return entry
        return None

    async def get_schedule(self, property_id) -> ScheduleResult:
        parsed_id = parse_property_id(property_id)

        # 1. Serve from cache while fresh
        if parsed_id is not None:
            entry = self._fresh_entry(parsed_id)
            if entry is not None:
                logger.info(f"CachedBinData: Cache HIT for {parsed_id}")
                return dict(entry.schedule)

        if parsed_id is None:
            logger.warning(f"CachedBinData: No bin ID provided (got {property_id!r})")
            return ErrorResult(error=NO_ID_ERROR, id=property_id)

        # 2. Cache MISS or stale entry
        logger.info(f"CachedBinData: Cache MISS for {parsed_id}. Calling underlying fetcher.")
        result = await self._fetcher.get_schedule(parsed_id)

        # 3. Store successful fetches only
        if isinstance(result, ErrorResult):
            logger.warning(f"CachedBinData: Underlying fetcher failed for {parsed_id}. Result not cached.")
            return result

        self._entries[parsed_id] = CacheEntry(schedule=dict(result), captured_at=self._clock())
        logger.info(f"CachedBinData: Cached {len(result)} categories for {parsed_id}")
        return result
