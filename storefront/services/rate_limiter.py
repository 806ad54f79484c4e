# storefront/services/rate_limiter.py
import time

import redis

from storefront.utils.retry import redis_retry
from storefront.utils.settings import REDIS_URL
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Fixed-window request counter kept in Redis (INCR + EXPIRE)."""

    def __init__(
        self,
        limit: int,
        window_seconds: int = 60,
        url: str | None = None,
        client: redis.Redis | None = None,
    ):
        self.limit = limit
        self.window_seconds = window_seconds
        self.redis = client or redis.Redis.from_url(url or REDIS_URL, decode_responses=True)

    def _key(self, client_key: str, now: float) -> str:
        return f"ratelimit:{client_key}:{int(now // self.window_seconds)}"

    @redis_retry()
    def hit(self, client_key: str, now: float | None = None) -> bool:
        """Count one request; False once the window's limit is exceeded."""
        key = self._key(client_key, time.time() if now is None else now)
        count = self.redis.incr(key)
        if count == 1:
            self.redis.expire(key, self.window_seconds)

        if count > self.limit:
            logger.warning(f"Rate limit exceeded for {client_key} ({count}/{self.limit})")
            return False
        return True
