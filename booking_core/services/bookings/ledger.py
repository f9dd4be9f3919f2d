# booking_core/services/bookings/ledger.py
"""
Booking ledger: overlap queries, schedule locks and soft deletion.

Overlap uses half-open ranges: a booking [date_start, date_end) collides
with [start, end) iff date_start < end and date_end > start. Soft-deleted
rows never take part in overlap queries; cancelled rows are excluded by
default.
"""

import logging
from datetime import datetime
from typing import Iterable

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import BookingNotFound, StorageContention
from ...models.tables import Bookings, ScheduleLocks
from ..clock import utcnow
from .status import BookingStatus

logger = logging.getLogger(__name__)

LIVE_EXCLUDED = (BookingStatus.CANCELLED,)


class BookingLedger:
    """Persistence access for Bookings rows on one session."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, booking_id: int, include_deleted: bool = False) -> Bookings | None:
        # refresh identity-map copies
        query = self.db.query(Bookings).populate_existing().filter(Bookings.id == booking_id)
        if not include_deleted:
            query = query.filter(Bookings.deleted_at.is_(None))
        return query.first()

    def find_overlapping(
        self,
        start: datetime,
        end: datetime,
        provider_id: int | None = None,
        customer_id: int | None = None,
        exclude_statuses: Iterable[BookingStatus] = LIVE_EXCLUDED,
    ) -> list[Bookings]:
        """
        Bookings of provider_id OR customer_id whose range intersects [start, end).

        At least one of provider_id / customer_id must be given.
        """
        owners = []
        if provider_id is not None:
            owners.append(Bookings.provider_id == provider_id)
        if customer_id is not None:
            owners.append(Bookings.customer_id == customer_id)
        if not owners:
            raise ValueError("provider_id or customer_id is required")

        query = self.db.query(Bookings).filter(
            or_(*owners),
            Bookings.deleted_at.is_(None),
            Bookings.date_start < end,
            Bookings.date_end > start,
        )
        excluded = [BookingStatus(s).value for s in exclude_statuses]
        if excluded:
            query = query.filter(Bookings.status.notin_(excluded))

        return query.order_by(Bookings.date_start, Bookings.id).all()

    def list_bookings(
        self,
        provider_id: int | None = None,
        customer_id: int | None = None,
        status: BookingStatus | None = None,
    ) -> list[Bookings]:
        query = self.db.query(Bookings).filter(Bookings.deleted_at.is_(None))
        if provider_id is not None:
            query = query.filter(Bookings.provider_id == provider_id)
        if customer_id is not None:
            query = query.filter(Bookings.customer_id == customer_id)
        if status is not None:
            query = query.filter(Bookings.status == BookingStatus(status).value)
        return query.order_by(Bookings.date_start, Bookings.id).all()

    def add(self, booking: Bookings) -> Bookings:
        self.db.add(booking)
        self.db.flush()
        return booking


# ── Schedule locks ───────────────────────────────────────────────────────


def provider_lock_key(provider_id: int) -> str:
    return f"provider:{provider_id}"


def customer_lock_key(customer_id: int) -> str:
    return f"customer:{customer_id}"


def acquire_schedule_locks(db: Session, keys: Iterable[str]) -> None:
    """
    Take write locks on schedule_locks rows for `keys` in the current transaction.

    Must run before any read the caller relies on. Keys are locked in sorted
    order so two writers never wait on each other crosswise. The UPDATE takes
    the SQLite write lock / the PostgreSQL row lock; a missing row is created,
    and a concurrent creation of the same row surfaces as StorageContention.
    """
    for key in sorted(set(keys)):
        result = db.execute(
            update(ScheduleLocks)
            .where(ScheduleLocks.key == key)
            .values(version=ScheduleLocks.version + 1)
        )
        if result.rowcount:
            continue

        db.add(ScheduleLocks(key=key, version=1))
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise StorageContention(f"Lock row {key} was created concurrently", key=key)


# ── Soft deletion and reads ──────────────────────────────────────────────


def get_booking(db: Session, booking_id: int) -> Bookings:
    booking = BookingLedger(db).get(booking_id)
    if booking is None:
        raise BookingNotFound(f"Booking {booking_id} not found", booking_id=booking_id)
    return booking


def list_bookings(
    db: Session,
    provider_id: int | None = None,
    customer_id: int | None = None,
    status: BookingStatus | None = None,
) -> list[Bookings]:
    return BookingLedger(db).list_bookings(provider_id=provider_id, customer_id=customer_id, status=status)


def delete_booking(db: Session, booking_id: int, now: datetime | None = None) -> Bookings:
    """
    Soft-delete a booking. Status is left untouched; the time is freed
    because overlap queries skip deleted rows.
    """
    booking = get_booking(db, booking_id)
    booking.deleted_at = now or utcnow()
    db.commit()

    logger.info(f"Booking {booking_id} soft-deleted (status={booking.status})")
    return booking
