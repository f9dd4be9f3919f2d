# booking_core/services/slots/redis_store.py
"""
Redis cache for merged open intervals.

Key format: slots:open:{provider_id}:{date}
Value: JSON list of ["start_iso", "end_iso"] pairs (UTC, merged, sorted).
An empty list is a valid cached value ("calculated, no open time").

Only provider-declared open windows are cached. Blackouts and bookings are
read live on every computation.
"""

import json
import logging
from datetime import date, datetime

from redis import Redis, RedisError

from .config import BookingConfig, get_booking_config
from .intervals import TimeWindow

logger = logging.getLogger(__name__)


class OpenIntervalCache:
    """Redis storage wrapper for per-day open intervals."""

    KEY_PREFIX = "slots:open"

    def __init__(self, redis: Redis, config: BookingConfig | None = None):
        self.redis = redis
        self.config = config or get_booking_config()

    def _key(self, provider_id: int, dt: date) -> str:
        return f"{self.KEY_PREFIX}:{provider_id}:{dt.isoformat()}"

    # ── Read ─────────────────────────────────────────────────────────────

    def get(self, provider_id: int, dt: date) -> list[TimeWindow] | None:
        """
        Cached open intervals for a day.

        Returns None on cache miss or when Redis is unreachable.
        """
        try:
            raw = self.redis.get(self._key(provider_id, dt))
        except RedisError as e:
            logger.warning(f"Slot cache read failed for provider={provider_id} {dt}: {e}")
            return None

        if raw is None:
            return None

        if isinstance(raw, bytes):
            raw = raw.decode()
        return [
            TimeWindow(datetime.fromisoformat(start), datetime.fromisoformat(end))
            for start, end in json.loads(raw)
        ]

    # ── Write ────────────────────────────────────────────────────────────

    def store(self, provider_id: int, dt: date, windows: list[TimeWindow]) -> None:
        payload = json.dumps([[w.start.isoformat(), w.end.isoformat()] for w in windows])
        try:
            self.redis.set(self._key(provider_id, dt), payload, ex=self.config.cache_ttl_seconds)
        except RedisError as e:
            logger.warning(f"Slot cache write failed for provider={provider_id} {dt}: {e}")

    # ── Delete ───────────────────────────────────────────────────────────

    def delete(self, provider_id: int, dates: list[date] | None = None) -> int:
        """
        Delete cached days.

        Args:
            provider_id: Provider ID
            dates: Specific dates, or None to delete every cached day.

        Returns:
            Number of deleted keys (0 when Redis is unreachable).
        """
        try:
            if dates:
                keys = [self._key(provider_id, dt) for dt in dates]
            else:
                keys = list(self.redis.scan_iter(match=f"{self.KEY_PREFIX}:{provider_id}:*"))

            if not keys:
                return 0

            return self.redis.delete(*keys)
        except RedisError as e:
            logger.warning(f"Slot cache delete failed for provider={provider_id}: {e}")
            return 0
