"""Tests for notification emission."""

import json
from datetime import datetime
from unittest.mock import MagicMock

from booking_core.models.tables import Bookings
from booking_core.services import events
from booking_core.services.events import (
    BOOKING_CREATED,
    P2P_QUEUE,
    NullNotificationSink,
    RedisNotificationSink,
    booking_payload,
    get_notification_sink,
    safe_notify,
)

from tests.conftest import FailingSink, RecordingSink


def make_booking() -> Bookings:
    return Bookings(
        id=7,
        provider_id=1,
        customer_id=2,
        service_id=3,
        date_start=datetime(2030, 1, 14, 10, 0),
        date_end=datetime(2030, 1, 14, 11, 0),
        duration_minutes=60,
        status="pending",
    )


def test_payload():
    assert booking_payload(make_booking()) == {
        "booking_id": 7,
        "provider_id": 1,
        "customer_id": 2,
        "service_id": 3,
        "date_start": "2030-01-14T10:00:00",
        "date_end": "2030-01-14T11:00:00",
        "status": "pending",
    }


def test_redis_sink_pushes_json_event():
    redis = MagicMock()
    RedisNotificationSink(redis).notify("booking_cancelled", make_booking(), cancelled_by="customer")

    queue, raw = redis.rpush.call_args.args
    event = json.loads(raw)
    assert queue == P2P_QUEUE
    assert event["type"] == "booking_cancelled"
    assert event["booking_id"] == 7
    assert event["cancelled_by"] == "customer"
    assert isinstance(event["ts"], int)


def test_safe_notify_reports_delivery():
    sink = RecordingSink()
    assert safe_notify(sink, BOOKING_CREATED, make_booking())
    assert sink.events == [(BOOKING_CREATED, 7, {})]


def test_safe_notify_swallows_sink_failure():
    assert safe_notify(FailingSink(), BOOKING_CREATED, make_booking()) is False


def test_safe_notify_swallows_redis_failure():
    from redis import ConnectionError as RedisConnectionError

    redis = MagicMock()
    redis.rpush.side_effect = RedisConnectionError("down")
    assert safe_notify(RedisNotificationSink(redis), BOOKING_CREATED, make_booking()) is False


def test_default_sink_follows_settings(monkeypatch):
    monkeypatch.setattr(events.settings, "notifications_enabled", False)
    assert isinstance(get_notification_sink(), NullNotificationSink)
    assert safe_notify(None, BOOKING_CREATED, make_booking())

    monkeypatch.setattr(events.settings, "notifications_enabled", True)
    sink = get_notification_sink()
    assert isinstance(sink, RedisNotificationSink)
    assert sink.queue == P2P_QUEUE
