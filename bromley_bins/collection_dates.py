import re
from datetime import datetime, timedelta, date
from typing import Optional

import pytz

LONDON = pytz.timezone('Europe/London')

# "Monday, 5th May" with an optional ", at 7:05am" suffix
COLLECTION_DATE_RE = re.compile(
    r"^\s*(?P<weekday>[A-Za-z]+),?\s+(?P<day>\d{1,2})(?:st|nd|rd|th)?\s+(?P<month>[A-Za-z]+)"
    r"(?:\s*,?\s*at\s+(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<meridiem>am|pm))?\s*$",
    re.IGNORECASE,
)


def now_london() -> datetime:
    return datetime.now(LONDON)


def strip_annotation(text: str) -> str:
    """
    Removes everything from the first bracket onward.
    e.g. "Saturday, 20th April (this collection has been adjusted from its usual time)"
    -> "Saturday, 20th April"
    """
    if '(' in text:
        text = text[:text.index('(')]
    return text.strip()


def _month_number(month_name: str) -> Optional[int]:
    for fmt in ("%B", "%b"):
        try:
            # Dummy leap year so that 29th February still parses
            return datetime.strptime(f"1 {month_name} 2000", f"%d {fmt} %Y").month
        except ValueError:
            continue
    return None


def _nearest_occurrence(month: int, day: int, hour: int, minute: int, now: datetime) -> Optional[datetime]:
    """
    Resolves a year-less date to the occurrence nearest to `now` among last year,
    this year and next year. Ties go to the future occurrence.
    """
    local_now = now.astimezone(LONDON)
    candidates = []
    for year in (local_now.year - 1, local_now.year, local_now.year + 1):
        try:
            naive = datetime(year, month, day, hour, minute)
        except ValueError:
            continue
        candidates.append(LONDON.localize(naive))
    if not candidates:
        return None
    return min(candidates, key=lambda c: (abs(c - local_now), c < local_now))


def parse_collection_date(text: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    """
    Parses Bromley collection text such as "Monday, 5th May" or
    "Friday, 2nd May, at 7:05am" into an aware Europe/London datetime.

    The page never shows a year, so the year is inferred as the one putting the
    date nearest to `now`. Returns None if the text does not match.
    """
    if not text:
        return None
    if now is None:
        now = now_london()

    match = COLLECTION_DATE_RE.match(strip_annotation(text))
    if not match:
        return None

    month = _month_number(match.group('month'))
    if month is None:
        return None

    hour, minute = 0, 0
    if match.group('hour'):
        hour = int(match.group('hour'))
        minute = int(match.group('minute'))
        if not (1 <= hour <= 12 and minute < 60):
            return None
        hour = hour % 12
        if match.group('meridiem').lower() == 'pm':
            hour += 12

    return _nearest_occurrence(month, int(match.group('day')), hour, minute, now)


def ordinal(day: int) -> str:
    if 11 <= day % 100 <= 13:
        suffix = 'th'
    else:
        suffix = {1: 'st', 2: 'nd', 3: 'rd'}.get(day % 10, 'th')
    return f"{day}{suffix}"


def local_date(value: datetime) -> date:
    return value.astimezone(LONDON).date()


def tomorrow(now: Optional[datetime] = None) -> date:
    if now is None:
        now = now_london()
    return local_date(now) + timedelta(days=1)


def friendly_date(value: datetime) -> str:
    """Formats as "Monday, May 5th"."""
    local_value = value.astimezone(LONDON)
    return f"{local_value.strftime('%A')}, {local_value.strftime('%B')} {ordinal(local_value.day)}"
