"""Helpers for the naive local-time convention used throughout the planner.

Every timestamp the scheduler touches is a naive datetime expressed in the
configured time zone. Aware values coming from clients are converted once, at
the schema boundary.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from studyblocks.core.config import get_settings


def local_zone() -> ZoneInfo:
    return ZoneInfo(get_settings().timezone)


def to_local_naive(value: datetime) -> datetime:
    """Convert an aware datetime to the planner zone and drop tzinfo."""
    if value.tzinfo is None:
        return value
    return value.astimezone(local_zone()).replace(tzinfo=None)


def local_now() -> datetime:
    return datetime.now(local_zone()).replace(tzinfo=None, microsecond=0)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def date_range(first: date, last: date) -> list[date]:
    """Inclusive list of calendar days between two dates."""
    if last < first:
        return []
    return [first + timedelta(days=offset) for offset in range((last - first).days + 1)]


def days_touched(start: datetime, end: datetime) -> list[date]:
    """Calendar days an interval occupies; an end at midnight does not count."""
    last = (end - timedelta(microseconds=1)).date() if end > start else start.date()
    return date_range(start.date(), last)
