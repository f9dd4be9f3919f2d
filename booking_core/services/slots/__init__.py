# booking_core/services/slots/__init__.py
"""
Slots calculation module.

Level 1: Merged open intervals per provider/date (cached in Redis)
Level 2: Service start times (calculated on-the-fly against live bookings)
"""

from .config import BookingConfig, get_booking_config
from .availability import compute_available_slots, compute_week_slots, is_time_slot_available
from .redis_store import OpenIntervalCache
from .invalidator import invalidate_provider_cache

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "compute_available_slots",
    "compute_week_slots",
    "is_time_slot_available",
    "OpenIntervalCache",
    "invalidate_provider_cache",
]
