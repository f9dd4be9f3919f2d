# booking_core/services/bookings/state_machine.py
"""
Booking status transitions.

Each transition is a version-checked read-modify-write of one booking row
(Bookings.version is the mapper's version_id_col). A concurrent writer makes
the flush fail with StaleDataError; the transition is then re-evaluated
against fresh state, so confirm and cancel racing from the same state cannot
both apply to it.

Notifications go out only after the commit.
"""

import logging
from datetime import datetime

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from ...errors import BookingInPast, IllegalTransition, StorageContention
from ...models.tables import Bookings
from ..clock import to_utc_naive, utcnow
from ..events import (
    BOOKING_CANCELLED,
    BOOKING_CONFIRMED,
    BOOKING_STATUS_CHANGED,
    NotificationSink,
    safe_notify,
)
from ..slots.config import BookingConfig, get_booking_config
from .ledger import get_booking
from .status import TIME_GUARDED, BookingStatus, can_transition

logger = logging.getLogger(__name__)


def transition(
    db: Session,
    booking_id: int,
    target_status: BookingStatus | str,
    actor_role: str = "system",
    *,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    sink: NotificationSink | None = None,
) -> Bookings:
    """
    Move a booking to target_status.

    Raises:
        BookingNotFound, BookingInPast, IllegalTransition, StorageContention
    """
    config = config or get_booking_config()
    try:
        target = BookingStatus(target_status)
    except ValueError:
        raise IllegalTransition(f"Unknown status {target_status!r}", booking_id=booking_id)

    fixed_now = to_utc_naive(now) if now else None

    for attempt in range(1, config.max_retries + 1):
        try:
            booking, old_status = _apply(db, booking_id, target, actor_role, fixed_now or utcnow())
            break
        except (StaleDataError, OperationalError) as e:
            db.rollback()
            logger.warning(
                f"transition contention booking={booking_id} → {target.value} "
                f"attempt={attempt}/{config.max_retries}: {e}"
            )
    else:
        raise StorageContention(
            "Booking was modified concurrently, retry the transition",
            booking_id=booking_id,
        )

    logger.info(
        f"Booking {booking_id} status {old_status.value} → {target.value} by {actor_role}"
    )

    safe_notify(
        sink, BOOKING_STATUS_CHANGED, booking,
        old_status=old_status.value, new_status=target.value, actor_role=actor_role,
    )
    if target == BookingStatus.CONFIRMED:
        safe_notify(sink, BOOKING_CONFIRMED, booking)
    elif target == BookingStatus.CANCELLED:
        safe_notify(sink, BOOKING_CANCELLED, booking, cancelled_by=actor_role)

    return booking


def _apply(
    db: Session,
    booking_id: int,
    target: BookingStatus,
    actor_role: str,
    now: datetime,
) -> tuple[Bookings, BookingStatus]:
    booking = get_booking(db, booking_id)
    old_status = BookingStatus(booking.status)

    # Time guard comes first: a past booking can be neither confirmed nor cancelled
    if target in TIME_GUARDED and booking.date_start <= now:
        db.rollback()
        raise BookingInPast(
            f"Cannot {_verb(target)} a booking that already started",
            booking_id=booking_id,
        )

    if not can_transition(old_status, target):
        db.rollback()
        raise IllegalTransition(
            f"Cannot transition from {old_status.value} to {target.value}",
            booking_id=booking_id,
        )

    booking.status = target.value
    if target == BookingStatus.CANCELLED:
        booking.cancelled_by = actor_role
    db.commit()
    return booking, old_status


def _verb(target: BookingStatus) -> str:
    return "confirm" if target == BookingStatus.CONFIRMED else "cancel"


# ── Convenience wrappers ─────────────────────────────────────────────────


def confirm_booking(db: Session, booking_id: int, actor_role: str = "provider", **kwargs) -> Bookings:
    return transition(db, booking_id, BookingStatus.CONFIRMED, actor_role, **kwargs)


def cancel_booking(db: Session, booking_id: int, actor_role: str = "customer", **kwargs) -> Bookings:
    return transition(db, booking_id, BookingStatus.CANCELLED, actor_role, **kwargs)


def complete_booking(db: Session, booking_id: int, actor_role: str = "provider", **kwargs) -> Bookings:
    return transition(db, booking_id, BookingStatus.COMPLETED, actor_role, **kwargs)
