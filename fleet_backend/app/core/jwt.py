"""
JWT token utilities for sessions.

A session token identifies a profile by user id. Role, company and grants
are never trusted from the token; they are reloaded from the profile store
on every request.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt
from fleet_backend.app.core.config import settings


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """
    Sign a session payload with the session key.

    get_caller() only reads `user_id` back out and reloads the profile, so
    the payload carries nothing else worth trusting. Expiry defaults to
    access_token_expire_minutes.
    """
    to_encode = data.copy()
    
    if expires_delta:
        expire = datetime.now(timezone.utc) + expires_delta
    else:
        expire = datetime.now(timezone.utc) + timedelta(minutes=settings.access_token_expire_minutes)
    
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def create_session_token(profile) -> str:
    """Session token for a profile."""
    return create_access_token(data={"sub": profile.email, "user_id": profile.id})


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """
    Decode and validate a JWT access token.
    
    Returns:
        Decoded payload if signature and expiry are valid, None otherwise
    """
    try:
        return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError:
        return None
