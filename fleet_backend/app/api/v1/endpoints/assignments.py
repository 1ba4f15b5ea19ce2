"""
Assignment API endpoints.

Thin HTTP layer over AssignmentLedger, which does the authorization,
precondition checks and the transaction.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.driver import Driver
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.models.enums import AssignmentStatus, DriverStatus
from fleet_backend.app.schemas.assignment import (
    AssignmentCreate, AssignmentEnd, AssignmentResponse, AssignmentListResponse
)
from fleet_backend.app.core.dependencies import get_caller
from fleet_backend.app.services.assignment_ledger import AssignmentLedger

router = APIRouter(tags=["Assignments"])


@router.get("/drivers/{driver_id}/assignments", response_model=AssignmentListResponse)
async def list_driver_assignments(
    driver_id: int = Path(..., description="Driver ID"),
    status_filter: Optional[AssignmentStatus] = Query(None, alias="status"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Assignment history of a driver, newest first."""
    assignments = await AssignmentLedger(db).list_for_driver(caller, driver_id, status_filter)
    driver = await db.get(Driver, driver_id)
    
    return AssignmentListResponse(
        assignments=[AssignmentResponse.model_validate(a) for a in assignments],
        total=len(assignments),
        driver_status=DriverStatus(driver.status).value,
    )


@router.post(
    "/drivers/{driver_id}/assignments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_assignment(
    assignment_data: AssignmentCreate,
    driver_id: int = Path(..., description="Driver ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    Assign a vehicle to a driver.
    
    The driver must be active, the vehicle available and in the same
    company, and neither may already hold an active assignment.
    """
    assignment = await AssignmentLedger(db).create(
        caller,
        driver_id=driver_id,
        vehicle_id=assignment_data.vehicle_id,
        start_date=assignment_data.start_date,
        notes=assignment_data.notes,
    )
    return AssignmentResponse.model_validate(assignment)


@router.get("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def get_assignment(
    assignment_id: int = Path(..., description="Assignment ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    assignment = await AssignmentLedger(db).get(caller, assignment_id)
    return AssignmentResponse.model_validate(assignment)


@router.post("/assignments/{assignment_id}/end", response_model=AssignmentResponse)
async def end_assignment(
    end_data: Optional[AssignmentEnd] = None,
    assignment_id: int = Path(..., description="Assignment ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """End an active assignment. The request body is optional."""
    end_data = end_data or AssignmentEnd()
    assignment = await AssignmentLedger(db).end(
        caller,
        assignment_id,
        end_date=end_data.end_date,
        notes=end_data.notes,
    )
    return AssignmentResponse.model_validate(assignment)
