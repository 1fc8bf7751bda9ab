"""Rate limiter service using Redis."""

import logging

from redis import Redis
from redis.exceptions import RedisError

from transcript_relay.core.config import Settings, get_settings

logger = logging.getLogger(__name__)


class RateLimitExceeded(Exception):
    """Exception raised when rate limit is exceeded."""

    def __init__(
        self,
        message: str,
        remaining: int = 0,
        reset_time: int = 0,
    ) -> None:
        super().__init__(message)
        self.remaining = remaining
        self.reset_time = reset_time


class RateLimiter:
    """Fixed-window request counter per client, stored in Redis.

    Counters expire with the window. If Redis is unreachable requests are
    let through and a warning is logged.
    """

    KEY_PREFIX = "rate_limit"
    DEFAULT_WINDOW_SECONDS = 60

    def __init__(
        self,
        redis_client: Redis | None = None,  # type: ignore[type-arg]
        settings: Settings | None = None,
        window_seconds: int | None = None,
    ) -> None:
        """Initialize the rate limiter.

        Args:
            redis_client: Redis client instance. If None, creates from settings.
            settings: Application settings. Defaults to get_settings().
            window_seconds: Window size in seconds. Defaults to 60.
        """
        self.settings = settings or get_settings()
        self._redis: Redis | None = redis_client  # type: ignore[type-arg]
        self.window_seconds = window_seconds or self.DEFAULT_WINDOW_SECONDS

    @property
    def redis(self) -> Redis:  # type: ignore[type-arg]
        """Get or create Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = Redis.from_url(
                str(self.settings.redis_url),
                socket_timeout=1,
            )
        return self._redis

    def _make_key(self, key_type: str, identifier: str) -> str:
        """Generate a Redis key.

        Args:
            key_type: Type of rate limit (e.g., "ingest", "search")
            identifier: Unique identifier (e.g., client IP)

        Returns:
            Redis key string
        """
        return f"{self.KEY_PREFIX}:{key_type}:{identifier}"

    async def check_and_increment(
        self,
        key_type: str,
        identifier: str,
        max_requests: int | None = None,
    ) -> dict[str, int]:
        """Count a request and reject it if the window is full.

        Args:
            key_type: Type of rate limit (e.g., "ingest", "search")
            identifier: Unique identifier (e.g., client IP)
            max_requests: Maximum requests per window. Defaults to settings.

        Returns:
            Dict with current_count, remaining, and reset_time

        Raises:
            RateLimitExceeded: If rate limit is exceeded
        """
        limit = max_requests or self.settings.rate_limit_per_minute
        key = self._make_key(key_type, identifier)

        try:
            pipe = self.redis.pipeline()
            pipe.incr(key)
            pipe.ttl(key)
            new_count, ttl = pipe.execute()
            # First hit in a window starts the clock; later hits leave it alone
            if ttl < 0:
                self.redis.expire(key, self.window_seconds)
                ttl = self.window_seconds
        except RedisError as e:
            logger.warning(f"Rate limiter unavailable, allowing request: {e}")
            return {"current_count": 0, "remaining": limit, "reset_time": 0}

        new_count = int(new_count)
        reset_time = max(0, int(ttl))

        if new_count > limit:
            raise RateLimitExceeded(
                f"Too many requests, please try again later. "
                f"Max {limit} requests per {self.window_seconds} seconds.",
                remaining=0,
                reset_time=reset_time,
            )

        return {
            "current_count": new_count,
            "remaining": limit - new_count,
            "reset_time": reset_time,
        }

    async def reset(self, key_type: str, identifier: str) -> None:
        """Clear the counter for an identifier.

        Args:
            key_type: Type of rate limit
            identifier: Unique identifier
        """
        key = self._make_key(key_type, identifier)
        self.redis.delete(key)
