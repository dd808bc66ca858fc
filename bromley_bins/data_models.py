from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

import pytz


def to_utc_iso(value: datetime) -> str:
    """Formats an aware datetime as a millisecond ISO string in UTC, e.g. 2025-05-04T23:00:00.000Z."""
    utc_value = value.astimezone(pytz.utc)
    return utc_value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{utc_value.microsecond // 1000:03d}Z"


def parse_property_id(raw: Any) -> Optional[int]:
    """
    Parses a property (bin) ID from a path segment, CLI argument or config value.

    Returns the non-negative integer ID, or None when the input is missing,
    negative or not a whole number.
    """
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None
    text = str(raw).strip()
    if not (text.isascii() and text.isdecimal()):
        return None
    try:
        return int(text)
    except ValueError:
        # longer than the interpreter's int conversion limit
        return None


@dataclass
class CollectionEntry:
    """Represents the next and last collection for one waste category."""
    category: str
    next_collection: str
    next_collection_utc: datetime
    last_collection: str
    last_collection_utc: datetime

    def as_dict(self) -> Dict[str, str]:
        return {
            "nextCollection": self.next_collection,
            "nextCollectionUTC": to_utc_iso(self.next_collection_utc),
            "lastCollection": self.last_collection,
            "lastCollectionUTC": to_utc_iso(self.last_collection_utc),
        }


# Category name -> entry, in page order
Schedule = Dict[str, CollectionEntry]


def schedule_as_dict(schedule: Schedule) -> Dict[str, Dict[str, str]]:
    return {category: entry.as_dict() for category, entry in schedule.items()}


@dataclass
class CacheEntry:
    """A schedule captured for one property at a point in time."""
    schedule: Schedule
    captured_at: datetime

    def as_dict(self) -> Dict[str, Any]:
        return {"data": schedule_as_dict(self.schedule), "timestamp": self.captured_at.isoformat()}


@dataclass
class FetchFailure:
    """Returned by a PageFetcher once every attempt at a URL has failed."""
    url: str
    attempts: int
    cause: str


@dataclass
class ErrorResult:
    """Structured failure for a property lookup; returned, never raised."""
    error: str
    id: Any = None
    cause: Optional[str] = None

    def as_dict(self) -> Dict[str, Any]:
        result = {"error": self.error, "id": self.id}
        if self.cause is not None:
            result["cause"] = self.cause
        return result


@dataclass
class NextCollections:
    """The soonest collection date for a property and every bin due on it."""
    next_collection_date_utc: datetime
    next_collection_date: str
    next_collection_date_day: str
    next_collection_date_friendly: str
    is_tomorrow: bool
    bins: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "nextCollectionDateUtc": to_utc_iso(self.next_collection_date_utc),
            "nextCollectionDate": self.next_collection_date,
            "nextCollectionDateDay": self.next_collection_date_day,
            "nextCollectionDateFriendly": self.next_collection_date_friendly,
            "isTomorrow": self.is_tomorrow,
            "bins": list(self.bins),
        }


ScheduleResult = Union[Schedule, ErrorResult]
