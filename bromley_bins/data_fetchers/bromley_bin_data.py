import logging
import re
from datetime import datetime
from typing import Optional, List, Tuple

from bs4 import BeautifulSoup

from .base_fetcher import BinDataFetcher, PageFetcher, body_text_contains
from ..collection_dates import parse_collection_date, now_london
from ..data_models import (
    CollectionEntry, ErrorResult, FetchFailure, Schedule, ScheduleResult, parse_property_id,
)

# --- Configuration ---
BASE_URL = "https://recyclingservices.bromley.gov.uk/waste"
READY_MARKER = "Your collections"
HEADING_SELECTOR = 'h3[class*="govuk-heading-m waste-service-name"]'
ROW_SELECTOR = 'div[class*="govuk-summary-list__row"]'
ROW_KEY_SELECTOR = 'dt[class*="govuk-summary-list__key"]'
ROW_VALUE_SELECTOR = 'dd[class*="govuk-summary-list__value"]'
NEXT_COLLECTION_LABEL = "Next collection"
LAST_COLLECTION_LABEL = "Last collection"

NO_ID_ERROR = "No bin ID provided"
FETCH_ERROR = "Error getting bin details for bin ID"
PARSE_ERROR = "Error parsing bin details for bin ID"

logger = logging.getLogger(__name__)
WHITESPACE_RUN = re.compile(r'\s\s+')


def _first_text(row, selector: str) -> str:
    element = row.select_one(selector)
    if element is None:
        return ''
    return WHITESPACE_RUN.sub(' ', element.get_text()).strip()


def _collect_sections(soup: BeautifulSoup) -> Tuple[List[str], List[str], List[str]]:
    """Returns headings, next-collection texts and last-collection texts, each in document order."""
    headings = [heading.get_text().strip() for heading in soup.select(HEADING_SELECTOR)]
    next_collections, last_collections = [], []
    for row in soup.select(ROW_SELECTOR):
        label = _first_text(row, ROW_KEY_SELECTOR)
        if label == NEXT_COLLECTION_LABEL:
            next_collections.append(_first_text(row, ROW_VALUE_SELECTOR))
        elif label == LAST_COLLECTION_LABEL:
            last_collections.append(_first_text(row, ROW_VALUE_SELECTOR))
    return headings, next_collections, last_collections


def extract_schedule(property_id, markup: Optional[str], now: Optional[datetime] = None) -> Optional[Schedule]:
    """
    Parses a rendered Bromley results page into a Schedule.

    Headings are paired with the Next/Last collection rows purely by position:
    the i-th heading takes the i-th "Next collection" and the i-th "Last
    collection" value. This matches the page layout; if the site ever lays out
    its sections differently the categories will be mispaired.

    A category without both dates, or whose dates cannot be parsed, is dropped.
    Returns None if the markup is missing or cannot be parsed at all.
    """
    if markup is None:
        logger.error(f"No markup to parse for bin ID {property_id}")
        return None
    if now is None:
        now = now_london()

    logger.info(f"Getting bin details for {property_id}")
    try:
        soup = BeautifulSoup(markup, 'html.parser')
        headings, next_collections, last_collections = _collect_sections(soup)
    except Exception as e:
        logger.error(f"Error parsing bin details for {property_id}: {e}", exc_info=True)
        return None

    schedule: Schedule = {}
    for index, category in enumerate(headings):
        if index >= len(next_collections) or index >= len(last_collections):
            logger.warning(f"Bin ID {property_id}: '{category}' has no matching next/last collection, skipping")
            continue
        next_text, last_text = next_collections[index], last_collections[index]
        next_utc = parse_collection_date(next_text, now)
        last_utc = parse_collection_date(last_text, now)
        if next_utc is None or last_utc is None:
            logger.warning(f"Bin ID {property_id}: could not parse dates for '{category}' "
                           f"(next='{next_text}', last='{last_text}'), skipping")
            continue
        schedule[category] = CollectionEntry(
            category=category,
            next_collection=next_text,
            next_collection_utc=next_utc,
            last_collection=last_text,
            last_collection_utc=last_utc,
        )

    logger.info(f"Got bin details for {property_id}: {len(schedule)} categories")
    return schedule


class BromleyBinData(BinDataFetcher):
    """Fetches bin collection schedules from the Bromley recycling services site."""

    def __init__(self, page_fetcher: PageFetcher, base_url: str = BASE_URL, clock=now_london):
        self._page_fetcher = page_fetcher
        self.base_url = base_url.rstrip('/')
        self._clock = clock

    def url_for(self, property_id: int) -> str:
        return f"{self.base_url}/{property_id}"

    async def get_schedule(self, property_id) -> ScheduleResult:
        parsed_id = parse_property_id(property_id)
        if parsed_id is None:
            logger.warning(f"No bin ID provided (got {property_id!r})")
            return ErrorResult(error=NO_ID_ERROR, id=property_id)

        logger.info(f"Getting bin details for {parsed_id}")
        markup = await self._page_fetcher.fetch(self.url_for(parsed_id), body_text_contains(READY_MARKER))
        if isinstance(markup, FetchFailure):
            logger.warning(f"Error getting bin details for {parsed_id}: {markup.cause}")
            return ErrorResult(error=FETCH_ERROR, id=parsed_id, cause=markup.cause)

        schedule = extract_schedule(parsed_id, markup, self._clock())
        if schedule is None:
            return ErrorResult(error=PARSE_ERROR, id=parsed_id)
        return schedule
