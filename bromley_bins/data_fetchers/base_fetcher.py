import abc
import json
import logging
from typing import Union

from ..data_models import FetchFailure, ScheduleResult

logger = logging.getLogger(__name__)

DEFAULT_ATTEMPTS = 3


def body_text_contains(marker: str) -> str:
    """Builds a readiness predicate that holds once the page body shows `marker`."""
    return f'document.querySelector("body").innerText.includes({json.dumps(marker)})'


class PageFetcher(abc.ABC):
    """Renders a page in an isolated browser session and returns its markup."""

    def __init__(self, attempts: int = DEFAULT_ATTEMPTS):
        if attempts < 1:
            raise ValueError(f"attempts must be at least 1, got {attempts}")
        self.attempts = attempts

    @abc.abstractmethod
    async def render(self, url: str, ready_predicate: str) -> str:
        """
        Makes a single attempt at rendering `url`.

        Args:
            url: The fully formed page URL.
            ready_predicate: JavaScript expression that is truthy once the
                dynamic content has finished rendering.

        Returns:
            The rendered markup.

        Raises:
            Exception: on any navigation, readiness-wait or cleanup failure.
        """

    async def fetch(self, url: str, ready_predicate: str) -> Union[str, FetchFailure]:
        """Renders `url`, retrying from scratch up to `self.attempts` times with no delay."""
        last_error = None
        for attempt in range(self.attempts):
            logger.info(f"Getting URL - retry count {attempt}: {url}")
            try:
                content = await self.render(url, ready_predicate)
                logger.info(f"Got URL: {url}")
                return content
            except Exception as e:
                logger.warning(f"Error while fetching {url} (attempt {attempt + 1}/{self.attempts}): {e}")
                last_error = e
        logger.error(f"Giving up on {url} after {self.attempts} attempts")
        return FetchFailure(url=url, attempts=self.attempts, cause=str(last_error))


class BinDataFetcher(abc.ABC):
    """Abstract base class for fetching bin collection schedules."""

    @abc.abstractmethod
    async def get_schedule(self, property_id) -> ScheduleResult:
        """
        Fetches the collection schedule for a property.

        Args:
            property_id: The property (bin) ID, raw or already parsed.

        Returns:
            The Schedule, or an ErrorResult describing why it could not be
            obtained.
        """
