"""
Profile schemas.

Profiles are created and changed by admins of their own company.
"""

from pydantic import BaseModel, EmailStr, Field
from datetime import datetime
from typing import List, Optional
from fleet_backend.app.core.permissions import effective_permissions
from fleet_backend.app.models.enums import Role


class ProfileCreate(BaseModel):
    """Schema for an admin adding a user to their company."""
    email: EmailStr
    password: str = Field(..., min_length=8)
    full_name: str = Field(..., min_length=1, max_length=255)
    role: Role = Role.USER
    explicit_permissions: List[str] = Field(default_factory=list, description="Extra `resource:action` grants")


class ProfileUpdate(BaseModel):
    """Schema for changing role, grants or active flag of a profile."""
    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    role: Optional[Role] = None
    explicit_permissions: Optional[List[str]] = None
    is_active: Optional[bool] = None


class ProfileResponse(BaseModel):
    id: int
    company_id: int
    email: str
    full_name: str
    role: Role
    explicit_permissions: List[str]
    is_active: bool
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class MeResponse(ProfileResponse):
    """Profile of the caller with the effective permission set spelled out."""
    permissions: List[str]
    
    @classmethod
    def from_profile(cls, profile) -> "MeResponse":
        data = ProfileResponse.model_validate(profile).model_dump()
        data["permissions"] = sorted(effective_permissions(profile.role, profile.explicit_permissions))
        return cls(**data)


class ProfileListResponse(BaseModel):
    profiles: List[ProfileResponse]
    total: int
