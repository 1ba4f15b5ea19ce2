"""
Session revocation using Redis.

Signed-out tokens and deactivated profiles are recorded here so that a
token stops working immediately instead of at expiry.
"""

import logging
from redis.exceptions import RedisError
from fleet_backend.app.core.redis_client import get_redis
from fleet_backend.app.core.config import settings

logger = logging.getLogger(__name__)

TOKEN_BLACKLIST_PREFIX = "blacklist:token:"
USER_TOKENS_PREFIX = "user:tokens:"


def _ttl_seconds() -> int:
    # Tokens expire on their own after this long, so entries can too
    return settings.access_token_expire_minutes * 60


async def revoke_token(token: str, user_id: int) -> bool:
    """
    Revoke a single session token (sign-out).
    
    Returns:
        True if successfully revoked, False otherwise
    """
    client = await get_redis()
    try:
        await client.set(f"{TOKEN_BLACKLIST_PREFIX}{token}", str(user_id), ex=_ttl_seconds())
        return True
    except RedisError as exc:
        logger.error("Error revoking token for user %s: %s", user_id, exc)
        return False


async def is_token_revoked(token: str) -> bool:
    """
    Check if a token has been revoked.
    
    Fails closed: if Redis cannot be reached the token is treated as revoked.
    """
    client = await get_redis()
    try:
        return await client.exists(f"{TOKEN_BLACKLIST_PREFIX}{token}") > 0
    except RedisError as exc:
        logger.error("Error checking token revocation: %s", exc)
        return True


async def revoke_all_user_tokens(user_id: int) -> bool:
    """
    Revoke every token of a profile (called when a profile is deactivated).
    """
    client = await get_redis()
    try:
        await client.set(f"{USER_TOKENS_PREFIX}{user_id}:revoked", "1", ex=_ttl_seconds())
        return True
    except RedisError as exc:
        logger.error("Error revoking all tokens for user %s: %s", user_id, exc)
        return False


async def are_user_tokens_revoked(user_id: int) -> bool:
    """Check if all tokens for a profile have been revoked. Fails closed."""
    client = await get_redis()
    try:
        return await client.exists(f"{USER_TOKENS_PREFIX}{user_id}:revoked") > 0
    except RedisError as exc:
        logger.error("Error checking user token revocation for %s: %s", user_id, exc)
        return True


async def clear_user_token_revocation(user_id: int) -> bool:
    """
    Clear the revocation flag for a profile (called on reactivation).
    """
    client = await get_redis()
    try:
        await client.delete(f"{USER_TOKENS_PREFIX}{user_id}:revoked")
        return True
    except RedisError as exc:
        logger.error("Error clearing token revocation for user %s: %s", user_id, exc)
        return False
