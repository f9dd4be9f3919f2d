"""
booking_core/services/events.py

Notification sink: hands booking events to the delivery worker.

The Redis sink pushes JSON events onto the `events:p2p` list, which the
notification worker consumes (e-mail templating, retries and delivery live
there). Emission is fire-and-forget: failures are logged and never reach the
caller of the booking core.
"""

import json
import logging
import time
from typing import Protocol

from redis import Redis

from ..config import settings
from ..models.tables import Bookings

logger = logging.getLogger(__name__)

BOOKING_CREATED = "booking_created"
BOOKING_STATUS_CHANGED = "booking_status_changed"
BOOKING_CONFIRMED = "booking_confirmed"
BOOKING_CANCELLED = "booking_cancelled"

P2P_QUEUE = "events:p2p"


class NotificationSink(Protocol):
    def notify(self, event_kind: str, booking: Bookings, **extra) -> None:
        ...


def booking_payload(booking: Bookings) -> dict:
    return {
        "booking_id": booking.id,
        "provider_id": booking.provider_id,
        "customer_id": booking.customer_id,
        "service_id": booking.service_id,
        "date_start": booking.date_start.isoformat() if booking.date_start else None,
        "date_end": booking.date_end.isoformat() if booking.date_end else None,
        "status": booking.status,
    }


class RedisNotificationSink:
    """Pushes events to a Redis list for the consumer loop."""

    def __init__(self, redis: Redis, queue: str = P2P_QUEUE):
        self.redis = redis
        self.queue = queue

    def notify(self, event_kind: str, booking: Bookings, **extra) -> None:
        event = {
            "type": event_kind,
            **booking_payload(booking),
            **extra,
            "ts": int(time.time()),
        }
        self.redis.rpush(self.queue, json.dumps(event))
        logger.info(f"Event emitted: {event_kind} → {self.queue}")


class NullNotificationSink:
    """Drops events (notifications disabled)."""

    def notify(self, event_kind: str, booking: Bookings, **extra) -> None:
        logger.debug(f"Notifications disabled, dropping {event_kind} for booking {booking.id}")


def get_notification_sink() -> NotificationSink:
    if not settings.notifications_enabled:
        return NullNotificationSink()

    from ..redis_client import redis_client
    return RedisNotificationSink(redis_client)


def safe_notify(sink: NotificationSink | None, event_kind: str, booking: Bookings, **extra) -> bool:
    """
    Deliver one event; never raises.

    Returns False when the sink failed.
    """
    sink = sink if sink is not None else get_notification_sink()
    try:
        sink.notify(event_kind, booking, **extra)
        return True
    except Exception as e:
        logger.error(f"Failed to emit event {event_kind} for booking {booking.id}: {e}")
        return False
