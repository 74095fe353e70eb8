"""Datetime helpers (UTC-aware timestamps and calendar month arithmetic)."""

import calendar
from datetime import UTC, datetime


def utc_now() -> datetime:
    """Current time as a UTC-aware datetime."""
    return datetime.now(UTC)


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


def add_months(dt: datetime, months: int) -> datetime:
    """Shift a datetime by whole calendar months.

    The day is clamped to the last day of the target month, so
    Aug 31 + 6 months is Feb 28 (or 29), never an overflow into March.
    """
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)
