"""Shared test fixtures and helpers."""

import os

# Settings are read at import time; keep tests off Redis and background loops
os.environ.setdefault("BOOKING_NOTIFICATIONS_ENABLED", "false")
os.environ.setdefault("BOOKING_CLEANUP_INTERVAL_SECONDS", "0")

from datetime import date, datetime, timedelta
from typing import Optional

import pytest
from sqlalchemy.orm import sessionmaker

from booking_core.context import CallerContext
from booking_core.database import init_db, make_engine
from booking_core.models.tables import AvailabilityWindows, Bookings, Services, Users
from booking_core.services.slots.config import BookingConfig

# Monday 2030-01-07 06:00 UTC; MONDAY is one week later
NOW = datetime(2030, 1, 7, 6, 0)
MONDAY = date(2030, 1, 14)
MONDAY_WEEK_DAY = 1  # Sunday = 0


class RecordingSink:
    """NotificationSink that keeps events in memory."""

    def __init__(self):
        self.events: list[tuple[str, int, dict]] = []

    def notify(self, event_kind, booking, **extra):
        self.events.append((event_kind, booking.id, extra))

    @property
    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.events]


class FailingSink:
    def notify(self, event_kind, booking, **extra):
        raise ConnectionError("mail queue down")


@pytest.fixture
def engine(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path / 'booking.db'}", lock_timeout_seconds=10)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def config():
    return BookingConfig()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def provider(db):
    return make_user(db, "Dr. Provider")


@pytest.fixture
def customer(db):
    return make_user(db, "Customer One")


@pytest.fixture
def service(db, provider):
    return make_service(db, provider.id, duration_minutes=60)


@pytest.fixture
def monday_window(db, provider):
    """Recurring Monday 09:00-17:00 UTC."""
    return add_recurring(db, provider.id, MONDAY_WEEK_DAY, "09:00", "17:00")


def utc_ctx(customer_id: Optional[int] = None, timezone: str = "UTC") -> CallerContext:
    return CallerContext(customer_id=customer_id, timezone=timezone)


def make_user(db, name: str, timezone: str = "UTC") -> Users:
    user = Users(name=name, timezone=timezone)
    db.add(user)
    db.commit()
    return user


def make_service(db, provider_id: int, duration_minutes: int = 60, **kwargs) -> Services:
    service = Services(
        provider_id=provider_id,
        name=kwargs.pop("name", f"Service {duration_minutes}m"),
        duration_minutes=duration_minutes,
        price=kwargs.pop("price", 50.0),
        **kwargs,
    )
    db.add(service)
    db.commit()
    return service


def add_recurring(db, provider_id: int, week_day: int, start: str, end: str, active: int = 1) -> AvailabilityWindows:
    window = AvailabilityWindows(
        provider_id=provider_id,
        kind="recurring",
        week_day=week_day,
        start=start,
        end=end,
        active=active,
    )
    db.add(window)
    db.commit()
    return window


def add_once(db, provider_id: int, day: date, start: str, end: str, active: int = 1) -> AvailabilityWindows:
    window = AvailabilityWindows(
        provider_id=provider_id,
        kind="once",
        start=f"{day.isoformat()} {start}",
        end=f"{day.isoformat()} {end}",
        active=active,
    )
    db.add(window)
    db.commit()
    return window


def add_booking(
    db,
    provider_id: int,
    service: Services,
    customer_id: int,
    start: datetime,
    status: str = "pending",
) -> Bookings:
    """Insert a booking row directly, bypassing the guard."""
    booking = Bookings(
        provider_id=provider_id,
        service_id=service.id,
        customer_id=customer_id,
        date_start=start,
        date_end=start + timedelta(minutes=service.duration_minutes),
        duration_minutes=service.duration_minutes,
        status=status,
    )
    db.add(booking)
    db.commit()
    return booking


def at(day: date, hhmm: str) -> datetime:
    hour, minute = map(int, hhmm.split(":"))
    return datetime(day.year, day.month, day.day, hour, minute)
