"""
Rate limiter configuration module.

Holds the fixed-window request counters keyed by client address. The limiter
is created once per application and handed to the rate limiting middleware,
so tests can build an isolated instance.
"""

import logging
import time
from typing import Callable, Optional

from limits import RateLimitItem, parse
from limits.storage import Storage, storage_from_string
from limits.strategies import FixedWindowRateLimiter
from slowapi.util import get_remote_address
from starlette.requests import Request

from hello_server.core.config import Settings

logger = logging.getLogger(__name__)

MEMORY_STORAGE_URI = "memory://"


class RateLimiter:
    """Fixed-window request counter with one bucket per client key."""

    def __init__(
        self,
        limit: str = "100/15minutes",
        storage_uri: str = MEMORY_STORAGE_URI,
        key_func: Callable[[Request], str] = get_remote_address,
    ):
        self.limit: RateLimitItem = parse(limit)
        self.storage: Storage = storage_from_string(storage_uri)
        self.strategy = FixedWindowRateLimiter(self.storage)
        self.key_func = key_func

    def key_for(self, request: Request) -> str:
        return self.key_func(request)

    def hit(self, key: str) -> bool:
        """Count one request for ``key``; False once the window is exhausted."""
        return self.strategy.hit(self.limit, key)

    def remaining(self, key: str) -> int:
        return max(0, self.strategy.get_window_stats(self.limit, key).remaining)

    def retry_after(self, key: str) -> int:
        """Seconds until the window for ``key`` resets (at least 1)."""
        reset_time = self.strategy.get_window_stats(self.limit, key).reset_time
        return max(1, int(reset_time - time.time()) + 1)

    def reset(self) -> None:
        """Drop every counter."""
        self.storage.reset()

    @property
    def max_requests(self) -> int:
        return self.limit.amount


def get_limiter_storage(settings: Settings) -> Optional[str]:
    """
    Get the storage backend for rate limiting.

    Returns Redis URL if configured, otherwise None (uses in-memory storage).
    Logs warnings for Redis configuration issues.
    """
    if settings.redis_url:
        if not settings.redis_url.startswith(("redis://", "rediss://")):
            logger.warning(
                "Invalid REDIS_URL format: %s. Using in-memory storage instead.",
                settings.redis_url,
            )
            return None
        logger.info("Using Redis backend for rate limiting")
        return settings.redis_url
    return None


def create_limiter(settings: Settings) -> RateLimiter:
    """
    Create and configure the rate limiter.

    Uses Redis backend if REDIS_URL is configured, otherwise falls back to
    in-memory storage. In-memory counters are lost on restart.

    Returns:
        Configured RateLimiter instance
    """
    storage_uri = get_limiter_storage(settings)

    if storage_uri:
        return RateLimiter(limit=settings.rate_limit, storage_uri=storage_uri)

    logger.info("Using in-memory storage for rate limiting")
    return RateLimiter(limit=settings.rate_limit)
