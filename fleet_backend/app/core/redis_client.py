"""
Redis client initialization.

Redis holds the session revocation list (signed-out tokens and deactivated
profiles).
"""

import logging
import redis.asyncio as redis
from fleet_backend.app.core.config import settings

logger = logging.getLogger(__name__)

# Module-level client; tests replace this attribute with a fake
redis_client = redis.from_url(
    settings.redis_url,
    decode_responses=settings.redis_decode_responses,
)


async def get_redis():
    """
    Get Redis client instance.
    
    Resolved at call time so a replaced client is picked up everywhere.
    """
    return redis_client


async def ping_redis() -> bool:
    """
    Test Redis connection.
    
    Returns:
        True if connection successful, False otherwise
    """
    try:
        return await redis_client.ping()
    except redis.RedisError as exc:
        logger.warning("Redis ping failed: %s", exc)
        return False
