"""Redis configuration and connection setup"""
import redis.asyncio as redis
from typing import Optional

from booking_engine.config.settings import get_settings

settings = get_settings()

# Redis connection pool
_redis_pool: Optional[redis.ConnectionPool] = None


def get_redis_pool() -> redis.ConnectionPool:
    """Get or create Redis connection pool"""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = redis.ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            retry_on_timeout=True,
        )
    return _redis_pool


async def get_redis() -> redis.Redis:
    """Get Redis client from pool"""
    pool = get_redis_pool()
    return redis.Redis(connection_pool=pool)


class RedisChannels:
    """Pub/sub channel patterns for real-time subscribers"""

    BOOKING_STATUS = "booking:{booking_id}:status"
    BUSINESS_BOOKINGS = "business:{business_id}:bookings"
