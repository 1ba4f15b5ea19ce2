"""
Session dependencies for FastAPI.

get_caller resolves the bearer token to the caller's Profile. It never
raises: an absent, invalid or revoked token, or an unknown user id, yields
None, and the authorization guard turns that into Unauthenticated. This
keeps the guard the only place where access is decided.
"""

import logging
from typing import Optional
from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from fleet_backend.app.core.jwt import decode_access_token
from fleet_backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

# auto_error=False: a missing header is reported by the guard, not by FastAPI
security = HTTPBearer(auto_error=False)


async def get_session_user_id(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[int]:
    """
    Resolve the session to a user id.
    
    Checks:
    1. A bearer token is present and its signature and expiry are valid
    2. The token itself has not been revoked (sign-out)
    3. The user's tokens have not been revoked as a whole (deactivation)
    
    Returns:
        The user id, or None when there is no usable session
    """
    if credentials is None:
        return None
    
    token = credentials.credentials
    payload = decode_access_token(token)
    if payload is None:
        return None
    
    user_id = payload.get("user_id")
    if not user_id:
        return None
    
    if await is_token_revoked(token):
        logger.info("Rejected revoked token for user %s", user_id)
        return None
    
    if await are_user_tokens_revoked(user_id):
        logger.info("Rejected token of revoked user %s", user_id)
        return None
    
    return user_id


async def get_caller(
    user_id: Optional[int] = Depends(get_session_user_id),
    db: AsyncSession = Depends(get_db),
) -> Optional[Profile]:
    """
    Load the caller profile for the current session.
    
    Returns:
        Profile, or None when unauthenticated or the profile no longer exists
    """
    if user_id is None:
        return None
    return await ProfileStore(db).get(user_id)


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    return credentials.credentials if credentials else None
