# booking_core/services/slots/availability.py
"""
Slot computation: bookable start times of a service on a date.

target_date is a calendar date in the caller timezone. Its span
[local 00:00, next local 00:00) is converted to UTC and may touch up to
three UTC dates; windows are stored per UTC date.

Algorithm:
1. Resolve the service (provider, duration)
2. Collect open windows of every UTC date the local day touches:
   recurring windows of the weekday + one-time windows with active = 1
3. Merge into disjoint intervals, drop those shorter than the duration
4. Discretize each interval with step = duration, keep starts inside the
   local day
5. Remove candidates that hit a closed period:
   one-time windows with active = 0 (blackouts), live bookings of the
   provider or of the calling customer
6. Remove candidates that are not strictly in the future
7. Render as "HH:MM" in the caller timezone

On a DST fall-back day two instants share a label. The earlier one is kept,
matching how a naive local time is read back (fold = 0).

Read-only: no locks, no writes. The result may be stale by the time a
reservation is attempted; reserve() re-validates under lock.
"""

import logging
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from redis import Redis
from sqlalchemy.orm import Session

from ...context import CallerContext, resolve_timezone
from ...errors import ServiceNotFound
from ...models.tables import Services
from ..bookings.ledger import BookingLedger
from ..clock import to_utc_naive, utcnow
from ..windows import WindowStore, window_on_date
from .config import BookingConfig, get_booking_config
from .intervals import TimeWindow, discretize, merge_windows, overlaps, week_day_of
from .redis_store import OpenIntervalCache

logger = logging.getLogger(__name__)


def compute_available_slots(
    db: Session,
    service_id: int,
    ctx: CallerContext,
    target_date: date,
    *,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
) -> list[str]:
    """
    Available start times of a service on target_date (caller's calendar).

    Returns:
        Ordered, deduplicated "HH:MM" strings in ctx.timezone.
        An empty list means "no free time", not an error.

    Raises:
        InvalidTimezone, ServiceNotFound
    """
    tz = resolve_timezone(ctx.timezone)
    service = get_service(db, service_id)
    if service is None:
        raise ServiceNotFound(f"Service {service_id} not found", service_id=service_id)

    starts = _candidate_starts(db, service, ctx, target_date, tz, now, config, redis)
    return _format_local(starts, tz)


def compute_week_slots(
    db: Session,
    service_id: int,
    ctx: CallerContext,
    start_date: date | None = None,
    days: int = 7,
    *,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
) -> dict[str, list[str]]:
    """
    Slots for `days` consecutive dates starting at start_date
    (default: today in the caller timezone).

    Returns:
        {"YYYY-MM-DD": ["HH:MM", ...], ...} with one entry per date.
    """
    tz = resolve_timezone(ctx.timezone)
    service = get_service(db, service_id)
    if service is None:
        raise ServiceNotFound(f"Service {service_id} not found", service_id=service_id)

    now = to_utc_naive(now) if now else utcnow()
    if start_date is None:
        start_date = now.replace(tzinfo=timezone.utc).astimezone(tz).date()

    result = {}
    for offset in range(max(days, 0)):
        day = start_date + timedelta(days=offset)
        starts = _candidate_starts(db, service, ctx, day, tz, now, config, redis)
        result[day.isoformat()] = _format_local(starts, tz)
    return result


def is_time_slot_available(
    db: Session,
    service_id: int,
    ctx: CallerContext,
    start: datetime,
    *,
    now: datetime | None = None,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
) -> bool:
    """
    Whether `start` is one of the computed slots of its local date.

    A naive `start` is read as local time in ctx.timezone.
    """
    tz = resolve_timezone(ctx.timezone)
    service = get_service(db, service_id)
    if service is None:
        raise ServiceNotFound(f"Service {service_id} not found", service_id=service_id)

    if start.tzinfo is None:
        start = start.replace(tzinfo=tz)
    local_date = start.astimezone(tz).date()

    starts = _candidate_starts(db, service, ctx, local_date, tz, now, config, redis)
    return to_utc_naive(start) in starts


# ── Core computation ─────────────────────────────────────────────────────


def local_day_span(target_date: date, tz: ZoneInfo) -> TimeWindow:
    """UTC span of the calendar day target_date in tz (23 or 25 hours on DST days)."""
    start = datetime.combine(target_date, time.min, tzinfo=tz)
    end = datetime.combine(target_date + timedelta(days=1), time.min, tzinfo=tz)
    return TimeWindow(to_utc_naive(start), to_utc_naive(end))


def utc_dates_of(span: TimeWindow) -> list[date]:
    """
    UTC dates whose windows can reach into span.

    Includes the date before span.start: one-time windows are filed under
    the UTC date they start on and may run past midnight.
    """
    first = span.start.date() - timedelta(days=1)
    last = (span.end - timedelta(microseconds=1)).date()
    return [first + timedelta(days=i) for i in range((last - first).days + 1)]


def _candidate_starts(
    db: Session,
    service: Services,
    ctx: CallerContext,
    target_date: date,
    tz: ZoneInfo,
    now: datetime | None,
    config: BookingConfig | None,
    redis: Redis | None,
) -> list[datetime]:
    """Sorted UTC start times on the local target_date that survive every filter."""
    config = config or get_booking_config()
    now = to_utc_naive(now) if now else utcnow()
    duration = timedelta(minutes=service.duration_minutes)
    day = local_day_span(target_date, tz)
    utc_dates = utc_dates_of(day)

    # Steps 2-3: open intervals long enough for one service
    open_intervals = [
        w for w in merge_windows(
            w for d in utc_dates
            for w in get_open_intervals(db, service.provider_id, d, config, redis)
        )
        if w.duration >= duration and w.overlaps(day)
    ]
    if not open_intervals:
        return []

    # Step 4: candidate grid, restricted to the local day
    candidates = sorted({
        t for w in open_intervals for t in discretize(w, duration)
        if day.start <= t < day.end
    })
    if not candidates:
        return []

    # Step 5: closed periods
    span = TimeWindow(candidates[0], candidates[-1] + duration)
    closed = [c for d in utc_dates for c in get_blackouts(db, service.provider_id, d)]
    bookings = BookingLedger(db).find_overlapping(
        span.start,
        span.end,
        provider_id=service.provider_id,
        customer_id=ctx.customer_id,
    )
    closed.extend(
        TimeWindow(b.date_start, b.date_end) for b in bookings if b.date_end > b.date_start
    )

    available = [
        t for t in candidates
        if not any(overlaps(t, t + duration, c.start, c.end) for c in closed)
    ]

    # Step 6: only future start times
    return [t for t in available if t > now]


def get_open_intervals(
    db: Session,
    provider_id: int,
    target_date: date,
    config: BookingConfig | None = None,
    redis: Redis | None = None,
) -> list[TimeWindow]:
    """Merged open intervals (UTC) of a provider on the UTC date target_date, cached when redis is given."""
    cache = OpenIntervalCache(redis, config) if redis is not None else None
    if cache is not None:
        cached = cache.get(provider_id, target_date)
        if cached is not None:
            return cached

    store = WindowStore(db)
    rows = store.list_windows(provider_id, week_day=week_day_of(target_date), active=True)
    rows += store.list_windows(provider_id, on_date=target_date, active=True)

    windows = [w for w in (window_on_date(row, target_date) for row in rows) if w is not None]
    merged = merge_windows(windows)

    if cache is not None:
        cache.store(provider_id, target_date, merged)
    return merged


def get_blackouts(db: Session, provider_id: int, target_date: date) -> list[TimeWindow]:
    """One-time inactive windows starting on the UTC date target_date."""
    rows = WindowStore(db).list_windows(provider_id, on_date=target_date, active=False)
    return [w for w in (window_on_date(row, target_date) for row in rows) if w is not None]


def _format_local(starts: list[datetime], tz: ZoneInfo) -> list[str]:
    """UTC starts → unique "HH:MM" strings in tz, keeping time order (first instant wins)."""
    seen = set()
    result = []
    for t in starts:
        label = t.replace(tzinfo=timezone.utc).astimezone(tz).strftime("%H:%M")
        if label not in seen:
            seen.add(label)
            result.append(label)
    return result


# ── Database helpers ─────────────────────────────────────────────────────


def get_service(db: Session, service_id: int) -> Services | None:
    """Active, non-deleted service by ID."""
    return db.query(Services).filter(
        Services.id == service_id,
        Services.is_active == 1,
        Services.deleted_at.is_(None),
    ).first()
