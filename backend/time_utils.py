"""
Time utilities for the Taskflow application.

This module is the single source of truth for "now". Code that depends on the
current time takes it from here (or from the get_clock dependency) so tests can
pin it.
"""

from datetime import datetime, timezone, timedelta
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """
    Get current UTC time.

    Returns:
        timezone-aware datetime in UTC
    """
    return datetime.now(timezone.utc)


def get_clock() -> Clock:
    """FastAPI dependency returning the clock used by time-dependent endpoints."""
    return utc_now


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    Naive values are assumed to already be UTC (SQLite drops tzinfo on the way out).
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def day_bounds(now: datetime) -> tuple[datetime, datetime]:
    """Return the UTC [start, end) range of the day containing ``now``."""
    start = as_utc(now).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)
