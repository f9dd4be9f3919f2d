# booking_core/services/slots/config.py
"""
Booking policy configuration for slot computation and reservation.
"""

import calendar
from dataclasses import dataclass
from datetime import datetime, timedelta
from functools import lru_cache

from ...config import settings


@dataclass(frozen=True)
class BookingConfig:
    """
    Policy knobs for the booking engine.

    Attributes:
        horizon_months: How far ahead a booking may start (calendar months)
        horizon_extra_days: Extra days on top of horizon_months
        max_retries: Re-evaluations of a reserve/transition on contention
        lock_timeout_seconds: Bounded wait for schedule locks
        require_open_window: Reject reservations outside open windows
        stale_pending_grace_minutes: Pending bookings this far in the past are purged
        cache_ttl_seconds: Redis TTL for cached open intervals
    """
    horizon_months: int = 6
    horizon_extra_days: int = 1
    max_retries: int = 3
    lock_timeout_seconds: float = 5.0
    require_open_window: bool = False
    stale_pending_grace_minutes: int = 60
    cache_ttl_seconds: int = 3600

    def __post_init__(self):
        """Validate configuration."""
        if self.horizon_months < 0 or self.horizon_extra_days < 0:
            raise ValueError("booking horizon must not be negative")
        if self.max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {self.max_retries}")

    def horizon_end(self, now: datetime) -> datetime:
        """Latest allowed start: now + horizon_months + horizon_extra_days."""
        return add_months(now, self.horizon_months) + timedelta(days=self.horizon_extra_days)

    @property
    def stale_pending_grace(self) -> timedelta:
        return timedelta(minutes=self.stale_pending_grace_minutes)


def add_months(dt: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day (Aug 31 + 6 months -> Feb 28/29)."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


@lru_cache
def get_booking_config() -> BookingConfig:
    """
    Get booking configuration (singleton), built from settings.
    """
    return BookingConfig(
        horizon_months=settings.booking_horizon_months,
        horizon_extra_days=settings.booking_horizon_extra_days,
        max_retries=settings.max_retries,
        lock_timeout_seconds=settings.lock_timeout_seconds,
        require_open_window=settings.require_open_window,
        stale_pending_grace_minutes=settings.stale_pending_grace_minutes,
        cache_ttl_seconds=settings.slot_cache_ttl_seconds,
    )
