"""
Driver schemas.
"""

from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional
from fleet_backend.app.models.enums import DriverStatus


class DriverCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    license_number: Optional[str] = Field(None, max_length=100)
    license_expiry: Optional[date] = None
    company_id: Optional[int] = Field(None, description="Defaults to the caller's company")


class DriverUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    license_number: Optional[str] = Field(None, max_length=100)
    license_expiry: Optional[date] = None
    status: Optional[DriverStatus] = None


class DriverResponse(BaseModel):
    id: int
    company_id: int
    first_name: str
    last_name: str
    email: Optional[str]
    phone: Optional[str]
    license_number: Optional[str]
    license_expiry: Optional[date]
    status: DriverStatus
    current_assignment_id: Optional[int]
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class DriverListResponse(BaseModel):
    drivers: List[DriverResponse]
    total: int
    page: int
    page_size: int
