"""Date parsing utilities."""

import re
from datetime import date, datetime, time, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

_AGO_PATTERN = re.compile(r"^(\d+)\s+(day|week|month|year)s?\s+ago$")


def _relative_delta(count: int, unit: str) -> relativedelta:
    if unit == "day":
        return relativedelta(days=count)
    if unit == "week":
        return relativedelta(weeks=count)
    if unit == "month":
        return relativedelta(months=count)
    return relativedelta(years=count)


def parse_datetime(value: str, now: Optional[datetime] = None) -> datetime:
    """Parse a date or timestamp string into a naive local datetime.

    Supports:
    - "now" (current time), "today", "yesterday" (midnight)
    - "3 days ago", "13 months ago", "1 year ago"
    - Absolute dates and timestamps: "2024-01-15", "2024-01-15T09:30", "January 15, 2024"

    Args:
        value: Date string
        now: Reference time for relative values. Defaults to the current time

    Returns:
        Naive datetime in local time

    Raises:
        ValueError: If the string cannot be parsed
    """
    text = value.strip().lower()
    if now is None:
        now = datetime.now()
    midnight = datetime.combine(now.date(), time.min)

    if text == "now":
        return now
    if text == "today":
        return midnight
    if text == "yesterday":
        return midnight - timedelta(days=1)

    match = _AGO_PATTERN.match(text)
    if match:
        return now - _relative_delta(int(match.group(1)), match.group(2))

    try:
        parsed = date_parser.parse(value.strip())
    except (ValueError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{value}': {e}")

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def start_of_day(value: date | datetime) -> datetime:
    """Return midnight at the start of the given day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.min)


def end_of_day(value: date | datetime) -> datetime:
    """Return the last representable instant of the given day."""
    if isinstance(value, datetime):
        value = value.date()
    return datetime.combine(value, time.max)


def months_before(moment: datetime, months: int) -> datetime:
    """Shift a timestamp back by whole calendar months."""
    return moment - relativedelta(months=months)
