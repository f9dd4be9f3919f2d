# booking_core/services/bookings/guard.py
"""
Reservation with conflict guarding.

reserve() checks and inserts inside one transaction that holds the
schedule locks of the provider and the customer, so two concurrent calls
for overlapping time cannot both commit. Checks run in this order:

1. start strictly in the future          → PastBooking
2. start within the booking horizon      → TooFarInFuture
3. no live booking of the provider overlaps → SlotOccupied
4. no live booking of the customer overlaps → CustomerDoubleBooked
5. customer is not the provider          → SelfBookingForbidden
6. (optional) inside open availability   → SlotUnavailable

Contention (lock timeouts, concurrent lock-row creation) re-runs the whole
evaluation up to config.max_retries times, then raises StorageContention.
"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from ...errors import (
    BookingError,
    CustomerDoubleBooked,
    PastBooking,
    SelfBookingForbidden,
    ServiceNotFound,
    SlotOccupied,
    SlotUnavailable,
    StorageContention,
    TooFarInFuture,
)
from ...models.tables import Bookings
from ..clock import to_utc_naive, utcnow
from ..events import BOOKING_CREATED, NotificationSink, safe_notify
from ..slots.availability import get_blackouts, get_open_intervals, get_service, utc_dates_of
from ..slots.config import BookingConfig, get_booking_config
from ..slots.intervals import TimeWindow, merge_windows, subtract_all, week_day_of
from ..windows import WindowStore, window_on_date
from .ledger import BookingLedger, acquire_schedule_locks, customer_lock_key, provider_lock_key
from .status import BookingStatus

logger = logging.getLogger(__name__)


def reserve(
    db: Session,
    provider_id: int,
    service_id: int,
    customer_id: int,
    start: datetime,
    notes: str | None = None,
    *,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    sink: NotificationSink | None = None,
) -> Bookings:
    """
    Reserve [start, start + service duration) for customer_id.

    `start` may be aware (converted to UTC) or naive (taken as UTC).

    Returns:
        The committed booking in status "pending".

    Raises:
        PastBooking, TooFarInFuture, ServiceNotFound, SlotOccupied,
        CustomerDoubleBooked, SelfBookingForbidden, SlotUnavailable,
        StorageContention
    """
    config = config or get_booking_config()
    start = to_utc_naive(start)
    fixed_now = to_utc_naive(now) if now else None

    last_error = None
    for attempt in range(1, config.max_retries + 1):
        try:
            booking = _reserve_once(
                db, provider_id, service_id, customer_id, start, notes,
                fixed_now or utcnow(), config,
            )
            break
        except StorageContention as e:
            last_error = e
        except OperationalError as e:
            db.rollback()
            last_error = e
        logger.warning(
            f"reserve contention provider={provider_id} customer={customer_id} "
            f"start={start.isoformat()} attempt={attempt}/{config.max_retries}: {last_error}"
        )
    else:
        raise StorageContention(
            "Could not acquire the schedule, retry the reservation",
            provider_id=provider_id,
            attempts=config.max_retries,
        )

    logger.info(
        f"Booking created id={booking.id} provider={provider_id} service={service_id} "
        f"customer={customer_id} start={booking.date_start.isoformat()}"
    )
    safe_notify(sink, BOOKING_CREATED, booking)
    return booking


def _reserve_once(
    db: Session,
    provider_id: int,
    service_id: int,
    customer_id: int,
    start: datetime,
    notes: str | None,
    now: datetime,
    config: BookingConfig,
) -> Bookings:
    """One evaluation of all checks plus the insert, in a single transaction."""
    if start <= now:
        raise PastBooking(start=start.isoformat())
    if start > config.horizon_end(now):
        raise TooFarInFuture(
            f"Cannot book more than {config.horizon_months} months in advance",
            start=start.isoformat(),
        )

    service = get_service(db, service_id)
    if service is None or service.provider_id != provider_id:
        raise ServiceNotFound(
            f"Service {service_id} is not offered by provider {provider_id}",
            service_id=service_id,
        )
    end = start + timedelta(minutes=service.duration_minutes)

    try:
        # Locks first: every read below sees the state no other writer can change
        acquire_schedule_locks(db, [provider_lock_key(provider_id), customer_lock_key(customer_id)])

        ledger = BookingLedger(db)
        if ledger.find_overlapping(start, end, provider_id=provider_id):
            raise SlotOccupied(start=start.isoformat())
        if ledger.find_overlapping(start, end, customer_id=customer_id):
            raise CustomerDoubleBooked(start=start.isoformat())
        if customer_id == provider_id:
            raise SelfBookingForbidden()

        requested = TimeWindow(start, end)
        if config.require_open_window and not is_within_open_time(db, provider_id, requested):
            raise SlotUnavailable(start=start.isoformat())

        booking = ledger.add(Bookings(
            provider_id=provider_id,
            service_id=service_id,
            customer_id=customer_id,
            date_start=start,
            date_end=end,
            duration_minutes=service.duration_minutes,
            status=BookingStatus.PENDING.value,
            slot_id=find_source_window_id(db, provider_id, requested),
            notes=notes,
        ))
        db.commit()
        return booking
    except BookingError:
        db.rollback()
        raise
    except IntegrityError as e:
        db.rollback()
        if "unique" in str(e.orig).lower():
            # Partial unique index on (provider_id, date_start) fired
            raise SlotOccupied(start=start.isoformat())
        raise


# ── Availability helpers ─────────────────────────────────────────────────


def is_within_open_time(db: Session, provider_id: int, requested: TimeWindow) -> bool:
    """Requested range lies inside open, non-blacked-out time."""
    dates = utc_dates_of(requested)
    open_time = merge_windows(w for d in dates for w in get_open_intervals(db, provider_id, d))
    blackouts = [b for d in dates for b in get_blackouts(db, provider_id, d)]
    return any(w.contains(requested) for w in subtract_all(open_time, blackouts))


def find_source_window_id(db: Session, provider_id: int, requested: TimeWindow) -> int | None:
    """
    ID of the window the reservation was carved from.

    Recurring windows of the weekday are preferred over one-time windows.
    None when no single window contains the whole range. The start date is
    tried first, then the day before (one-time windows running past midnight).
    """
    store = WindowStore(db)
    for day in reversed(utc_dates_of(requested)):
        rows = store.list_windows(provider_id, week_day=week_day_of(day), active=True)
        rows += store.list_windows(provider_id, on_date=day, active=True)

        for row in rows:
            window = window_on_date(row, day)
            if window is not None and window.contains(requested):
                return row.id
    return None
