"""
Assignment schemas.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import List, Optional
from fleet_backend.app.models.enums import AssignmentStatus


class AssignmentCreate(BaseModel):
    """Schema for assigning a vehicle to the driver in the URL."""
    vehicle_id: int
    start_date: datetime
    notes: Optional[str] = Field(None, max_length=2000)


class AssignmentEnd(BaseModel):
    """Schema for ending an assignment; end_date defaults to now."""
    end_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=2000)


class AssignmentResponse(BaseModel):
    id: int
    driver_id: int
    vehicle_id: int
    status: AssignmentStatus
    start_date: datetime
    end_date: Optional[datetime]
    assigned_by: int
    ended_by: Optional[int]
    notes: Optional[str]
    end_notes: Optional[str]
    created_at: datetime
    
    class Config:
        from_attributes = True


class AssignmentListResponse(BaseModel):
    assignments: List[AssignmentResponse]
    total: int
    driver_status: str
