"""
Stale pending booking cleanup.

Pending bookings whose start passed more than the grace period ago were
never confirmed; they are soft-deleted so they stop cluttering listings.
Status is left as is.

Runs as an asyncio task in the API lifespan.
Uses the synchronous session (via asyncio.to_thread).
"""

import asyncio
import logging
from datetime import datetime

from sqlalchemy.orm import Session

from ...config import settings
from ...database import SessionLocal
from ...models.tables import Bookings
from ..clock import to_utc_naive, utcnow
from ..slots.config import BookingConfig, get_booking_config
from .status import BookingStatus

logger = logging.getLogger(__name__)


def delete_stale_pending(
    db: Session,
    now: datetime | None = None,
    config: BookingConfig | None = None,
) -> int:
    """
    Soft-delete pending bookings that started before now - grace.

    Returns:
        Number of bookings deleted.
    """
    config = config or get_booking_config()
    now = to_utc_naive(now) if now else utcnow()
    cutoff = now - config.stale_pending_grace

    stale = (
        db.query(Bookings)
        .filter(
            Bookings.status == BookingStatus.PENDING.value,
            Bookings.deleted_at.is_(None),
            Bookings.date_start < cutoff,
        )
        .all()
    )
    for booking in stale:
        booking.deleted_at = now
    db.commit()

    if stale:
        logger.info(
            f"Soft-deleted {len(stale)} stale pending bookings: "
            f"{[b.id for b in stale]}"
        )
    return len(stale)


async def stale_pending_cleanup_loop() -> None:
    """Periodic loop that purges unconfirmed bookings left in the past."""
    interval = settings.cleanup_interval_seconds
    logger.info("stale_pending_cleanup_loop started")

    try:
        while True:
            try:
                await asyncio.to_thread(_cleanup_once)
            except asyncio.CancelledError:
                logger.info("stale_pending_cleanup_loop cancelled")
                raise
            except Exception:
                logger.exception("stale_pending_cleanup_loop error")

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        pass


def _cleanup_once() -> None:
    db = SessionLocal()
    try:
        delete_stale_pending(db)
    finally:
        db.close()
