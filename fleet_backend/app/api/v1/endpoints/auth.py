"""
Authentication API endpoints.

Sign-up creates a company together with its first profile, which is always
an admin. Sign-in issues a session token; sign-out revokes it.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.company import Company
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.models.enums import Role
from fleet_backend.app.schemas.auth import SignUp, SignIn, TokenResponse
from fleet_backend.app.schemas.profile import MeResponse
from fleet_backend.app.core.exceptions import AuthenticationError, BadRequestError
from fleet_backend.app.core.guards import authorization_guard
from fleet_backend.app.core.security import get_password_hash, verify_password
from fleet_backend.app.core.jwt import create_session_token
from fleet_backend.app.core.dependencies import get_caller, get_bearer_token
from fleet_backend.app.core.token_revocation import revoke_token
from fleet_backend.app.services.audit import log_event, AuditAction
from fleet_backend.app.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _token_response(profile: Profile) -> TokenResponse:
    return TokenResponse(
        access_token=create_session_token(profile),
        token_type="bearer",
        user_id=profile.id,
        email=profile.email,
        company_id=profile.company_id,
        role=profile.role,
    )


@router.post("/signup", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def sign_up(
    data: SignUp,
    db: AsyncSession = Depends(get_db)
):
    """
    Create a company and its admin profile.

    The first profile of a company is always an admin.
    """
    email = data.email.lower()
    if await ProfileStore(db).get_by_email(email):
        raise BadRequestError("Email already registered")

    company = Company(
        name=data.company_name,
        email=email,
        phone=data.company_phone,
        address=data.company_address,
    )
    db.add(company)
    await db.flush()

    profile = Profile(
        company_id=company.id,
        email=email,
        full_name=data.full_name,
        hashed_password=get_password_hash(data.password),
        role=Role.ADMIN,
        explicit_permissions=[],
        is_active=True,
    )
    db.add(profile)
    await db.flush()

    log_event(
        db,
        action=AuditAction.COMPANY_CREATED,
        actor_id=profile.id,
        company_id=company.id,
        entity_type="company",
        entity_id=company.id,
        metadata={"name": company.name},
    )
    log_event(
        db,
        action=AuditAction.PROFILE_CREATED,
        actor_id=profile.id,
        company_id=company.id,
        entity_type="profile",
        entity_id=profile.id,
        metadata={"role": Role.ADMIN.value, "signup": True},
    )
    await db.commit()

    logger.info("Company %s created with admin profile %s", company.id, profile.id)
    return _token_response(profile)


@router.post("/signin", response_model=TokenResponse)
async def sign_in(
    credentials: SignIn,
    db: AsyncSession = Depends(get_db)
):
    """
    Exchange email and password for a session token.

    Inactive profiles are refused even with correct credentials, with the
    same message as a wrong password.
    """
    profile = await ProfileStore(db).get_by_email(credentials.email.lower())

    if not profile or not verify_password(credentials.password, profile.hashed_password):
        logger.info("Sign-in failed for %s", credentials.email)
        raise AuthenticationError("Invalid credentials")

    if not profile.is_active:
        logger.info("Sign-in refused for inactive profile %s", profile.id)
        raise AuthenticationError("Invalid credentials")

    return _token_response(profile)


@router.post("/signout")
async def sign_out(
    caller: Optional[Profile] = Depends(get_caller),
    token: Optional[str] = Depends(get_bearer_token),
):
    """Revoke the presented session token."""
    authorization_guard.require_session(caller)

    await revoke_token(token, caller.id)
    return {"message": "Signed out successfully"}


@router.get("/me", response_model=MeResponse)
async def me(caller: Optional[Profile] = Depends(get_caller)):
    """Caller profile with its effective permissions."""
    authorization_guard.require_session(caller)
    return MeResponse.from_profile(caller)
