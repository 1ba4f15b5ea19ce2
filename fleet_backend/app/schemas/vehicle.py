"""
Vehicle schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Dict, List, Optional
from fleet_backend.app.models.enums import VehicleStatus


class VehicleCreate(BaseModel):
    """Schema for registering a vehicle. New vehicles start out available."""
    make: str = Field(..., min_length=1, max_length=100)
    model: str = Field(..., min_length=1, max_length=100)
    year: int = Field(..., ge=1900, le=2100)
    vin: Optional[str] = Field(None, max_length=50)
    license_plate: Optional[str] = Field(None, max_length=50)
    mileage: Optional[int] = Field(None, ge=0)
    company_id: Optional[int] = Field(None, description="Defaults to the caller's company")


class VehicleUpdate(BaseModel):
    make: Optional[str] = Field(None, min_length=1, max_length=100)
    model: Optional[str] = Field(None, min_length=1, max_length=100)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    vin: Optional[str] = Field(None, max_length=50)
    license_plate: Optional[str] = Field(None, max_length=50)
    mileage: Optional[int] = Field(None, ge=0)
    status: Optional[VehicleStatus] = None


class VehicleResponse(BaseModel):
    id: int
    company_id: int
    make: str
    model: str
    year: int
    vin: Optional[str]
    license_plate: Optional[str]
    mileage: Optional[int]
    status: VehicleStatus
    created_at: datetime
    updated_at: datetime
    
    class Config:
        from_attributes = True


class VehicleListResponse(BaseModel):
    vehicles: List[VehicleResponse]
    total: int
    page: int
    page_size: int


class VehicleStatusCounts(BaseModel):
    company_id: int
    counts: Dict[str, int]
