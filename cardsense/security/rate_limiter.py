"""Redis-backed fixed-window rate limiter.

Uses INCR + EXPIRE for simple, performant rate limiting. Checked before any
catalog or scoring work on the recommendation endpoints.

Usage:
    from cardsense.security.rate_limiter import enforce_recommendation_limit

    await enforce_recommendation_limit(user.id, "beginner")
"""

from __future__ import annotations

import logging

from cardsense.config import settings
from cardsense.db.engine import redis_client
from cardsense.errors import RateLimitedError

logger = logging.getLogger(__name__)


class RateLimiter:
    """Fixed-window rate limiter backed by Redis INCR + EXPIRE."""

    def __init__(self, redis: object) -> None:
        self._redis = redis

    async def check(self, key: str, limit: int, window: int) -> tuple[bool, int]:
        """Check if a request is within the rate limit.

        Returns:
            (allowed, retry_after); retry_after is seconds until the window
            resets (0 if allowed).
        """
        try:
            count = await self._redis.incr(key)
            if count == 1:
                await self._redis.expire(key, window)

            if count > limit:
                ttl = await self._redis.ttl(key)
                return False, max(ttl, 1)

            return True, 0
        except Exception:
            logger.exception("Rate limiter Redis error for key %s", key)
            # Fail open: a Redis outage must not block recommendations
            return True, 0


# Module-level singleton
rate_limiter = RateLimiter(redis_client)


async def enforce_recommendation_limit(user_id: str, flow: str) -> None:
    """Raise RateLimitedError when the user exceeded the per-flow window."""
    allowed, retry_after = await rate_limiter.check(
        f"rate:{user_id}:{flow}",
        limit=settings.engine.rate_limit_requests,
        window=settings.engine.rate_limit_window,
    )
    if not allowed:
        logger.warning("Rate limit hit: user=%s flow=%s retry_after=%ds", user_id, flow, retry_after)
        raise RateLimitedError(retry_after)
