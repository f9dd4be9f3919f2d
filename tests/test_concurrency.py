"""Concurrent reservations and transitions against one database file."""

import threading

from booking_core.errors import BookingError, CustomerDoubleBooked, IllegalTransition, SlotOccupied
from booking_core.models.tables import Bookings
from booking_core.services.bookings.guard import reserve
from booking_core.services.bookings.state_machine import transition
from booking_core.services.slots.config import BookingConfig

from tests.conftest import MONDAY, NOW, RecordingSink, add_booking, at, make_service, make_user

CONFIG = BookingConfig(max_retries=5, lock_timeout_seconds=10)


def run_concurrently(session_factory, calls):
    """Run each call(db) in its own thread and session, released together."""
    barrier = threading.Barrier(len(calls))
    results = [None] * len(calls)

    def worker(index, call):
        db = session_factory()
        try:
            barrier.wait()
            results[index] = call(db)
        except BookingError as e:
            results[index] = e
        finally:
            db.close()

    threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=60)
    return results


def test_same_slot_has_exactly_one_winner(db, session_factory, provider, service):
    customers = [make_user(db, f"Customer {i}").id for i in range(4)]
    start = at(MONDAY, "10:00")

    def book(customer_id):
        return lambda s: reserve(s, provider.id, service.id, customer_id, start,
                                 now=NOW, config=CONFIG, sink=RecordingSink())

    results = run_concurrently(session_factory, [book(c) for c in customers])

    winners = [r for r in results if isinstance(r, Bookings)]
    losers = [r for r in results if isinstance(r, SlotOccupied)]
    assert len(winners) == 1
    assert len(losers) == len(customers) - 1

    db.expire_all()
    live = db.query(Bookings).filter(Bookings.provider_id == provider.id).all()
    assert [b.id for b in live] == [winners[0].id]


def test_overlapping_but_misaligned_starts(db, session_factory, provider, service):
    first, second = make_user(db, "Customer A"), make_user(db, "Customer B")

    results = run_concurrently(session_factory, [
        lambda s: reserve(s, provider.id, service.id, first.id, at(MONDAY, "10:00"),
                          now=NOW, config=CONFIG, sink=RecordingSink()),
        lambda s: reserve(s, provider.id, service.id, second.id, at(MONDAY, "10:30"),
                          now=NOW, config=CONFIG, sink=RecordingSink()),
    ])

    assert sum(isinstance(r, Bookings) for r in results) == 1
    assert sum(isinstance(r, SlotOccupied) for r in results) == 1


def test_customer_cannot_be_double_booked_across_providers(db, session_factory, customer):
    first_provider, second_provider = make_user(db, "Provider A"), make_user(db, "Provider B")
    first_service = make_service(db, first_provider.id)
    second_service = make_service(db, second_provider.id)
    start = at(MONDAY, "10:00")

    results = run_concurrently(session_factory, [
        lambda s: reserve(s, first_provider.id, first_service.id, customer.id, start,
                          now=NOW, config=CONFIG, sink=RecordingSink()),
        lambda s: reserve(s, second_provider.id, second_service.id, customer.id, start,
                          now=NOW, config=CONFIG, sink=RecordingSink()),
    ])

    assert sum(isinstance(r, Bookings) for r in results) == 1
    assert sum(isinstance(r, CustomerDoubleBooked) for r in results) == 1


def test_different_providers_book_in_parallel(db, session_factory):
    pairs = []
    for i in range(3):
        provider = make_user(db, f"Provider {i}")
        customer = make_user(db, f"Customer {i}")
        pairs.append((provider.id, make_service(db, provider.id).id, customer.id))
    start = at(MONDAY, "10:00")

    results = run_concurrently(session_factory, [
        (lambda p, s, c: lambda sess: reserve(sess, p, s, c, start, now=NOW, config=CONFIG,
                                              sink=RecordingSink()))(*pair)
        for pair in pairs
    ])

    assert all(isinstance(r, Bookings) for r in results)


def test_racing_confirms_apply_once(db, session_factory, provider, customer, service):
    booking = add_booking(db, provider.id, service, customer.id, at(MONDAY, "10:00"))
    sinks = [RecordingSink(), RecordingSink()]

    results = run_concurrently(session_factory, [
        lambda s, sink=sink: transition(s, booking.id, "confirmed", "provider",
                                        now=NOW, config=CONFIG, sink=sink)
        for sink in sinks
    ])

    assert sum(isinstance(r, Bookings) for r in results) == 1
    assert sum(isinstance(r, IllegalTransition) for r in results) == 1
    # Only the applied transition is announced
    assert sum(len(sink.events) for sink in sinks) == 2

    db.expire_all()
    assert db.get(Bookings, booking.id).status == "confirmed"
