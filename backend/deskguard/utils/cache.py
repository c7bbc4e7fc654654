"""Redis connection helpers.

The permission override cache (`deskguard.auth.store.CachedPermissionStore`)
is the only Redis consumer. A Redis outage must never block an access
decision, so callers catch `redis.RedisError` and fall back to the database.
"""

import logging
from typing import Optional

import redis.asyncio as redis

from deskguard.config import settings

logger = logging.getLogger(__name__)

# Global Redis connection pool
_redis_client: Optional[redis.Redis] = None


async def get_redis() -> redis.Redis:
    """Get or create the Redis client (connects lazily on first command)."""
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.redis_url,
            encoding="utf-8",
            decode_responses=True,
            max_connections=50,
        )
    return _redis_client


async def close_redis():
    """Close the Redis connection (call on app shutdown)."""
    global _redis_client
    if _redis_client:
        await _redis_client.aclose()
        _redis_client = None
        logger.info("Redis connection closed")
