"""
Typed errors of the booking core.

Every rejection the core can produce is one of these classes. They carry a
stable `code` for API clients and an `http_status` that only the HTTP layer
looks at. `StorageContention` is the single retryable kind.
"""


class BookingError(Exception):
    code = "booking_error"
    http_status = 400
    retryable = False

    def __init__(self, detail: str | None = None, **context):
        self.detail = detail or self.__class__.__doc__ or self.code
        self.context = context
        super().__init__(self.detail)

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.detail, **self.context}


# ── Input validation ─────────────────────────────────────────────────────


class InvalidTimezone(BookingError):
    """Unknown IANA timezone."""
    code = "invalid_timezone"
    http_status = 422


class ServiceNotFound(BookingError):
    """Service does not exist or is not offered."""
    code = "service_not_found"
    http_status = 404


class BookingNotFound(BookingError):
    """Booking does not exist."""
    code = "booking_not_found"
    http_status = 404


# ── Business rules ───────────────────────────────────────────────────────


class PastBooking(BookingError):
    """Cannot book appointments in the past."""
    code = "past_booking"
    http_status = 422


class BookingInPast(PastBooking):
    """Booking time has already elapsed."""
    code = "booking_in_past"


class TooFarInFuture(BookingError):
    """Booking is beyond the allowed horizon."""
    code = "too_far_in_future"
    http_status = 422


class SelfBookingForbidden(BookingError):
    """Providers cannot book their own services."""
    code = "self_booking_forbidden"
    http_status = 403


class SlotUnavailable(BookingError):
    """Requested time is outside the provider's open windows."""
    code = "slot_unavailable"
    http_status = 409


# ── Conflicts ────────────────────────────────────────────────────────────


class SlotOccupied(BookingError):
    """This time slot is already occupied."""
    code = "slot_occupied"
    http_status = 409


class CustomerDoubleBooked(BookingError):
    """You already have a booking during this time."""
    code = "customer_double_booked"
    http_status = 409


class IllegalTransition(BookingError):
    """Status transition is not allowed."""
    code = "illegal_transition"
    http_status = 409


# ── Infrastructure ───────────────────────────────────────────────────────


class StorageContention(BookingError):
    """Storage is busy, retry the operation."""
    code = "storage_contention"
    http_status = 503
    retryable = True
