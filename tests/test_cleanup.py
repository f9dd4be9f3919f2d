"""Tests for soft deletion and the stale pending cleanup."""

import asyncio

import pytest

from booking_core.errors import BookingNotFound
from booking_core.services.bookings import cleanup
from booking_core.services.bookings.cleanup import delete_stale_pending
from booking_core.services.bookings.ledger import (
    BookingLedger,
    delete_booking,
    get_booking,
    list_bookings,
)
from booking_core.services.slots.availability import compute_available_slots

from tests.conftest import MONDAY, NOW, add_booking, at, make_user, utc_ctx


class TestSoftDelete:
    def test_deleted_booking_is_hidden(self, db, provider, customer, service):
        booking = add_booking(db, provider.id, service, customer.id, at(MONDAY, "10:00"), status="confirmed")
        deleted = delete_booking(db, booking.id, now=NOW)

        assert deleted.deleted_at == NOW
        assert deleted.status == "confirmed"
        with pytest.raises(BookingNotFound):
            get_booking(db, booking.id)
        assert list_bookings(db, provider_id=provider.id) == []
        assert BookingLedger(db).get(booking.id, include_deleted=True) is not None

    def test_deleting_twice(self, db, provider, customer, service):
        booking = add_booking(db, provider.id, service, customer.id, at(MONDAY, "10:00"))
        delete_booking(db, booking.id, now=NOW)
        with pytest.raises(BookingNotFound):
            delete_booking(db, booking.id, now=NOW)

    def test_deleted_booking_frees_slot(self, db, provider, customer, service, monday_window):
        booking = add_booking(db, provider.id, service, customer.id, at(MONDAY, "10:00"))
        assert "10:00" not in compute_available_slots(db, service.id, utc_ctx(), MONDAY, now=NOW)

        delete_booking(db, booking.id, now=NOW)
        assert "10:00" in compute_available_slots(db, service.id, utc_ctx(), MONDAY, now=NOW)


class TestListing:
    def test_filters(self, db, provider, customer, service):
        other = make_user(db, "Customer Two")
        first = add_booking(db, provider.id, service, customer.id, at(MONDAY, "10:00"))
        second = add_booking(db, provider.id, service, other.id, at(MONDAY, "09:00"), status="confirmed")

        assert [b.id for b in list_bookings(db, provider_id=provider.id)] == [second.id, first.id]
        assert [b.id for b in list_bookings(db, customer_id=customer.id)] == [first.id]
        assert [b.id for b in list_bookings(db, status="confirmed")] == [second.id]


class TestStalePending:
    @pytest.fixture
    def now(self):
        return at(MONDAY, "12:00")

    def test_only_old_pending_bookings_are_removed(self, db, provider, customer, service, config, now):
        stale = add_booking(db, provider.id, service, customer.id, at(MONDAY, "09:00"))
        recent = add_booking(db, provider.id, service, customer.id, at(MONDAY, "11:30"))
        confirmed = add_booking(db, provider.id, service, customer.id, at(MONDAY, "10:00"), status="confirmed")
        upcoming = add_booking(db, provider.id, service, customer.id, at(MONDAY, "15:00"))

        assert delete_stale_pending(db, now=now, config=config) == 1

        db.expire_all()
        assert stale.deleted_at == now
        assert stale.status == "pending"
        for kept in (recent, confirmed, upcoming):
            assert kept.deleted_at is None

    def test_second_run_is_a_no_op(self, db, provider, customer, service, config, now):
        add_booking(db, provider.id, service, customer.id, at(MONDAY, "09:00"))
        assert delete_stale_pending(db, now=now, config=config) == 1
        assert delete_stale_pending(db, now=now, config=config) == 0

    def test_grace_period_is_configurable(self, db, provider, customer, service, now):
        from booking_core.services.slots.config import BookingConfig

        add_booking(db, provider.id, service, customer.id, at(MONDAY, "11:30"))
        assert delete_stale_pending(db, now=now, config=BookingConfig(stale_pending_grace_minutes=15)) == 1


def test_cleanup_loop_survives_errors_and_stops_on_cancel(monkeypatch):
    calls = []

    def fake_cleanup_once():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("database unavailable")

    monkeypatch.setattr(cleanup, "_cleanup_once", fake_cleanup_once)
    monkeypatch.setattr(cleanup.settings, "cleanup_interval_seconds", 0)

    async def run():
        task = asyncio.create_task(cleanup.stale_pending_cleanup_loop())
        while len(calls) < 3:
            await asyncio.sleep(0.01)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return task

    task = asyncio.run(run())
    assert task.done()
    assert len(calls) >= 3
