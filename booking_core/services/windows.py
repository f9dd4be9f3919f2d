# booking_core/services/windows.py
"""
Read access to provider availability windows.

Windows are created and edited by the catalog layer; here they are only
queried (non-deleted rows) and projected onto a concrete date.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Protocol

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from ..models.tables import AvailabilityWindows
from .slots.intervals import TimeWindow

logger = logging.getLogger(__name__)

RECURRING = "recurring"
ONCE = "once"


class AvailabilityWindowStore(Protocol):
    def list_windows(
        self,
        provider_id: int,
        week_day: int | None = None,
        on_date: date | None = None,
        active: bool | None = None,
    ) -> list[AvailabilityWindows]:
        ...


class WindowStore:
    """SQLAlchemy-backed AvailabilityWindowStore."""

    def __init__(self, db: Session):
        self.db = db

    def list_windows(
        self,
        provider_id: int,
        week_day: int | None = None,
        on_date: date | None = None,
        active: bool | None = None,
    ) -> list[AvailabilityWindows]:
        """
        Non-deleted windows of a provider.

        week_day selects recurring windows of that weekday, on_date selects
        one-time windows starting on that UTC date; both together return the
        union. active filters on the active flag when given.
        """
        query = self.db.query(AvailabilityWindows).filter(
            AvailabilityWindows.provider_id == provider_id,
            AvailabilityWindows.deleted_at.is_(None),
        )

        conditions = []
        if week_day is not None:
            conditions.append(and_(
                AvailabilityWindows.kind == RECURRING,
                AvailabilityWindows.week_day == week_day,
            ))
        if on_date is not None:
            # start is stored as "YYYY-MM-DD HH:MM", so string bounds select the day
            conditions.append(and_(
                AvailabilityWindows.kind == ONCE,
                AvailabilityWindows.start >= on_date.isoformat(),
                AvailabilityWindows.start < (on_date + timedelta(days=1)).isoformat(),
            ))
        if conditions:
            query = query.filter(or_(*conditions))

        if active is not None:
            query = query.filter(AvailabilityWindows.active == (1 if active else 0))

        return query.order_by(AvailabilityWindows.id).all()

    def get_window(self, window_id: int) -> AvailabilityWindows | None:
        """Window by ID, soft-deleted rows included (their cache still needs dropping)."""
        return self.db.get(AvailabilityWindows, window_id)


# ── Projection onto a date ───────────────────────────────────────────────


def window_on_date(window: AvailabilityWindows, target_date: date) -> TimeWindow | None:
    """
    Concrete UTC TimeWindow of `window` for target_date.

    Recurring windows apply their time of day to target_date; one-time
    windows carry their own timestamps. Malformed rows yield None.
    """
    try:
        if window.kind == RECURRING:
            start = datetime.combine(target_date, _parse_time_of_day(window.start))
            if window.end.strip() in ("24:00", "24:00:00"):
                end = datetime.combine(target_date + timedelta(days=1), time.min)
            else:
                end = datetime.combine(target_date, _parse_time_of_day(window.end))
        else:
            start = parse_utc_timestamp(window.start)
            end = parse_utc_timestamp(window.end)
        return TimeWindow(start, end)
    except ValueError:
        logger.warning(
            f"Skipping malformed availability window id={window.id} "
            f"({window.kind} {window.start!r}-{window.end!r})"
        )
        return None


def _parse_time_of_day(value: str) -> time:
    return time.fromisoformat(value.strip())


def parse_utc_timestamp(value: str | datetime) -> datetime:
    """Parse a stored timestamp into a naive UTC datetime."""
    dt = value if isinstance(value, datetime) else datetime.fromisoformat(str(value).strip())
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt
