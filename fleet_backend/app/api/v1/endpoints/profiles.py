"""
Profile (company user) API endpoints.

Only admins of the same company may add or change profiles. The admin
cross-tenant path of the guard is switched off here, so no one can change
roles or grants in a company they do not belong to.
"""

import logging
from typing import Optional
from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.models.enums import Role
from fleet_backend.app.schemas.profile import (
    ProfileCreate, ProfileUpdate, ProfileResponse, ProfileListResponse
)
from fleet_backend.app.core.dependencies import get_caller
from fleet_backend.app.core.exceptions import BadRequestError, ResourceNotFoundError
from fleet_backend.app.core.guards import authorization_guard, scoped_company_id
from fleet_backend.app.core.permissions import Permission, unknown_permissions
from fleet_backend.app.core.security import get_password_hash
from fleet_backend.app.core.token_revocation import revoke_all_user_tokens, clear_user_token_revocation
from fleet_backend.app.services.audit import log_event, AuditAction
from fleet_backend.app.services.profile_store import ProfileStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/profiles", tags=["Profiles"])


def _validate_grants(grants) -> list[str]:
    unknown = unknown_permissions(grants)
    if unknown:
        raise BadRequestError("Unknown permissions", details={"unknown": unknown})
    return sorted(set(grants))


@router.get("", response_model=ProfileListResponse)
async def list_profiles(
    company_id: Optional[int] = Query(None, description="Defaults to the caller's company"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    target_company_id = scoped_company_id(caller, company_id)
    authorization_guard.enforce(caller, Permission.PROFILES_READ, target_company_id)
    
    result = await db.execute(
        select(Profile).where(Profile.company_id == target_company_id).order_by(Profile.id)
    )
    profiles = result.scalars().all()
    
    return ProfileListResponse(
        profiles=[ProfileResponse.model_validate(p) for p in profiles],
        total=len(profiles),
    )


@router.post("", response_model=ProfileResponse, status_code=status.HTTP_201_CREATED)
async def create_profile(
    profile_data: ProfileCreate,
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Add a user to the caller's own company."""
    authorization_guard.enforce(
        caller, Permission.PROFILES_CREATE, getattr(caller, "company_id", None), allow_cross_tenant=False
    )
    grants = _validate_grants(profile_data.explicit_permissions)
    
    email = profile_data.email.lower()
    if await ProfileStore(db).get_by_email(email):
        raise BadRequestError("Email already registered")
    
    profile = Profile(
        company_id=caller.company_id,
        email=email,
        full_name=profile_data.full_name,
        hashed_password=get_password_hash(profile_data.password),
        role=profile_data.role,
        explicit_permissions=grants,
        is_active=True,
    )
    db.add(profile)
    await db.flush()
    
    log_event(
        db,
        action=AuditAction.PROFILE_CREATED,
        actor_id=caller.id,
        company_id=caller.company_id,
        entity_type="profile",
        entity_id=profile.id,
        metadata={"role": profile_data.role.value, "explicit_permissions": grants},
    )
    await db.commit()
    await db.refresh(profile)
    
    return ProfileResponse.model_validate(profile)


@router.patch("/{profile_id}", response_model=ProfileResponse)
async def update_profile(
    update_data: ProfileUpdate,
    profile_id: int = Path(..., description="Profile (user) ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    Change a profile's name, role, explicit grants or active flag.
    
    Deactivating a profile also revokes its sessions.
    """
    target = await ProfileStore(db).get(profile_id)
    if not target:
        raise ResourceNotFoundError("Profile", profile_id)
    
    authorization_guard.enforce(
        caller, Permission.PROFILES_UPDATE, target.company_id, allow_cross_tenant=False
    )
    
    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
    previous_role = Role(target.role)
    previous_active = target.is_active
    
    if "explicit_permissions" in changes:
        changes["explicit_permissions"] = _validate_grants(changes["explicit_permissions"])
    
    for field, value in changes.items():
        setattr(target, field, value)
    
    action = AuditAction.PROFILE_UPDATED
    if "role" in changes and Role(changes["role"]) != previous_role:
        action = AuditAction.ROLE_CHANGED
    elif changes.get("is_active") is False and previous_active:
        action = AuditAction.PROFILE_DEACTIVATED
    
    log_event(
        db,
        action=action,
        actor_id=caller.id,
        company_id=target.company_id,
        entity_type="profile",
        entity_id=target.id,
        metadata={
            "fields": sorted(changes),
            "previous_role": previous_role.value,
            "role": Role(target.role).value,
        },
    )
    await db.commit()
    await db.refresh(target)
    
    if previous_active and not target.is_active:
        await revoke_all_user_tokens(target.id)
        logger.info("Profile %s deactivated by %s", target.id, caller.id)
    elif not previous_active and target.is_active:
        await clear_user_token_revocation(target.id)
    
    return ProfileResponse.model_validate(target)
