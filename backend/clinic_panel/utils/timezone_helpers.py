"""
Datetime normalisation helpers.
Backend records may carry offsets while filter bounds from query strings are
usually naive; everything is compared as naive UTC.
"""
from datetime import datetime, timezone
from typing import Optional


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC already."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def within_interval(value: Optional[datetime], start: datetime, end: datetime) -> bool:
    """Inclusive interval check; a missing value never matches."""
    if value is None:
        return False
    value = to_naive_utc(value)
    return to_naive_utc(start) <= value <= to_naive_utc(end)
