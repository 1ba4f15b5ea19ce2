"""
Authentication Pydantic schemas.

Defines request and response schemas for sign-up, sign-in and /me.
"""

from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from fleet_backend.app.models.enums import Role


class SignUp(BaseModel):
    """
    Schema for sign-up.
    
    Sign-up always creates a new company; the signing-up user becomes its
    admin. There is no way to choose a role here.
    """
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., min_length=8, description="Password (min 8 characters)")
    full_name: str = Field(..., min_length=1, max_length=255)
    company_name: str = Field(..., min_length=1, max_length=255)
    company_phone: Optional[str] = Field(None, max_length=50)
    company_address: Optional[str] = Field(None, max_length=500)


class SignIn(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    """
    Schema for session token response.
    
    Returned by successful sign-up / sign-in.
    """
    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field(default="bearer", description="Token type")
    user_id: int = Field(..., description="User (profile) ID")
    email: str = Field(..., description="Email address")
    company_id: int = Field(..., description="Company ID")
    role: Role = Field(..., description="Profile role")
