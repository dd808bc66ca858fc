import logging
from typing import Optional

from .base_fetcher import BinDataFetcher, PageFetcher
from .bromley_bin_data import BromleyBinData, BASE_URL
from .cached_data_fetcher import CachedBinData, DEFAULT_MAX_AGE
from .playwright_fetcher import PlaywrightPageFetcher
from ..collection_dates import now_london

logger = logging.getLogger(__name__)


def create_fetcher(source: str, use_cache: bool, page_fetcher: Optional[PageFetcher] = None,
                   base_url: str = BASE_URL, clock=now_london, max_age=DEFAULT_MAX_AGE) -> BinDataFetcher:
    """
    Factory function to create the appropriate BinDataFetcher instance.

    Args:
        source: The identifier for the data source (e.g., "bromley").
        use_cache: Whether to wrap the fetcher with the in-memory cache.
        page_fetcher: Renders pages for the source. Defaults to a
            PlaywrightPageFetcher with default settings.
        base_url: Base URL the property ID is appended to.
        clock: Returns the current aware datetime.
        max_age: How long a cached schedule stays fresh.

    Returns:
        An instance conforming to the BinDataFetcher interface.

    Raises:
        ValueError: If the specified source is unknown.
    """
    logger.info(f"Creating fetcher for source: '{source}', use_cache: {use_cache}")

    base_fetcher: BinDataFetcher

    # 1. Instantiate the base fetcher based on the source
    if source.lower() == "bromley":
        if page_fetcher is None:
            page_fetcher = PlaywrightPageFetcher()
        base_fetcher = BromleyBinData(page_fetcher, base_url=base_url, clock=clock)
    else:
        logger.error(f"Unknown data source requested: {source}")
        raise ValueError(f"Unknown data source: {source}")

    # 2. Conditionally wrap with the caching fetcher
    if use_cache:
        logger.info(f"Wrapping {type(base_fetcher).__name__} with CachedBinData.")
        return CachedBinData(base_fetcher, clock=clock, max_age=max_age)
    else:
        logger.info(f"Using direct fetcher {type(base_fetcher).__name__} (cache disabled).")
        return base_fetcher
