# booking_core/services/bookings/status.py
"""
Booking statuses and the legal-transition table.

Display concerns (labels, colours) belong to the presentation layer and are
not modelled here.
"""

from enum import Enum


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

# Transitions refused once the booking start has passed
TIME_GUARDED = frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED})


def can_transition(old: BookingStatus | str, new: BookingStatus | str) -> bool:
    return BookingStatus(new) in TRANSITIONS[BookingStatus(old)]


def is_terminal(status: BookingStatus | str) -> bool:
    return not TRANSITIONS[BookingStatus(status)]


def allowed_targets(status: BookingStatus | str) -> list[BookingStatus]:
    """Legal next statuses, in declaration order."""
    targets = TRANSITIONS[BookingStatus(status)]
    return [s for s in BookingStatus if s in targets]
