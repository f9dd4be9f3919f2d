from redis import Redis

from .config import settings

# Lazily connects on first command; nothing is opened at import time
redis_client = Redis.from_url(settings.redis_url, socket_timeout=2.0)
