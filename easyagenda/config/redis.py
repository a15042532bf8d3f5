# easyagenda/config/redis.py
"""Redis configuration and connection setup"""
import redis.asyncio as aioredis
import redis
from typing import Optional

from easyagenda.config.settings import get_settings

settings = get_settings()

# Redis connection pools
_redis_pool: Optional[aioredis.ConnectionPool] = None
_sync_redis_client: Optional[redis.Redis] = None


def get_redis_pool() -> aioredis.ConnectionPool:
    """Get or create async Redis connection pool"""
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            retry_on_timeout=True,
        )
    return _redis_pool


async def get_redis() -> aioredis.Redis:
    """Get async Redis client from pool (health checks)"""
    pool = get_redis_pool()
    return aioredis.Redis(connection_pool=pool)


def get_sync_redis() -> redis.Redis:
    """Blocking Redis client used for booking locks"""
    global _sync_redis_client
    if _sync_redis_client is None:
        _sync_redis_client = redis.Redis.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            retry_on_timeout=True,
        )
    return _sync_redis_client


# Redis key patterns for different data types
class RedisKeys:
    """Redis key patterns for consistent naming"""

    # Reservation critical section, one per professional per calendar day
    BOOKING_LOCK = "booking-lock:{professional_id}:{day}"

