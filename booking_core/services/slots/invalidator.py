# booking_core/services/slots/invalidator.py
"""
Cache invalidation for provider open intervals.

Triggers (called by the window CRUD layer or the admin endpoint):
✓ Recurring window created/edited/deleted → invalidate all dates
✓ One-time window created/edited/deleted → invalidate its dates

Does NOT trigger:
✗ Booking created/cancelled (bookings are never cached)
✗ Blackouts (read live)
"""

from datetime import date, timedelta

from redis import Redis

from ..windows import ONCE, parse_utc_timestamp
from .redis_store import OpenIntervalCache


def invalidate_provider_cache(
    redis: Redis,
    provider_id: int,
    dates: list[date] | None = None,
) -> int:
    """
    Invalidate cached open intervals for a provider.

    Returns:
        Number of deleted cache keys
    """
    return OpenIntervalCache(redis).delete(provider_id, dates)


def get_affected_dates(date_start: date, date_end: date) -> list[date]:
    """List of dates in [date_start, date_end] (order of arguments does not matter)."""
    if date_start > date_end:
        date_start, date_end = date_end, date_start

    dates = []
    current = date_start
    while current <= date_end:
        dates.append(current)
        current += timedelta(days=1)
    return dates


def get_affected_dates_from_window(window) -> list[date] | None:
    """
    Dates whose cache a window change touches.

    One-time windows affect the dates they span; recurring windows affect
    every date (None).
    """
    if window.kind != ONCE:
        return None

    start = parse_utc_timestamp(window.start)
    end = parse_utc_timestamp(window.end)
    return get_affected_dates(start.date(), end.date())
