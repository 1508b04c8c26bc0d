"""
config/redis_client.py
Optional async Redis client. Used only for per-IP rate limiting of
public endpoints; booking state never lives in Redis.
"""

from typing import Optional
import redis.asyncio as aioredis

from config.settings import settings


# ── Global client (initialized on startup) ───────────────────
redis_client: Optional[aioredis.Redis] = None


async def init_redis() -> bool:
    """Initialize the Redis connection pool. Returns False when Redis is not configured."""
    global redis_client
    if not settings.REDIS_URL:
        return False
    redis_client = aioredis.from_url(
        settings.REDIS_URL,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
    )
    # Test connection
    await redis_client.ping()
    return True


async def close_redis() -> None:
    """Close Redis connection pool."""
    global redis_client
    if redis_client:
        await redis_client.aclose()
        redis_client = None


class RedisRateLimiter:
    """Fixed-window request counter keyed per client."""

    def __init__(self, client: aioredis.Redis, window_seconds: int = 60):
        self.client = client
        self.window_seconds = window_seconds

    async def hit(self, key: str, limit: int) -> bool:
        """
        Count one request against `key`.
        Returns True if the request is allowed, False if rate limited.
        """
        count = await self.client.incr(key)
        if count == 1:
            await self.client.expire(key, self.window_seconds)
        return count <= limit
