# booking_core/services/bookings/__init__.py
"""
Booking lifecycle.

guard.reserve            - conflict-guarded reservation
state_machine.transition - status changes
ledger                   - overlap queries, schedule locks, soft deletion
cleanup                  - stale pending purge loop
"""

from .status import TRANSITIONS, BookingStatus, can_transition, is_terminal

__all__ = ["TRANSITIONS", "BookingStatus", "can_transition", "is_terminal"]
