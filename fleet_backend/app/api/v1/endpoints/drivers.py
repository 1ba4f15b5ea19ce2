"""
Driver API endpoints.

A driver holding an active assignment stays ACTIVE until the assignment is
ended.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.driver import Driver
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.models.enums import DriverStatus
from fleet_backend.app.schemas.driver import (
    DriverCreate, DriverUpdate, DriverResponse, DriverListResponse
)
from fleet_backend.app.core.dependencies import get_caller
from fleet_backend.app.core.exceptions import ResourceNotFoundError
from fleet_backend.app.core.guards import authorization_guard, scoped_company_id
from fleet_backend.app.core.permissions import Permission
from fleet_backend.app.services.assignment_ledger import AssignmentLedger
from fleet_backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/drivers", tags=["Drivers"])


async def _get_driver(db: AsyncSession, driver_id: int) -> Driver:
    driver = await db.get(Driver, driver_id)
    if not driver:
        raise ResourceNotFoundError("Driver", driver_id)
    return driver


@router.get("", response_model=DriverListResponse)
async def list_drivers(
    company_id: Optional[int] = Query(None, description="Defaults to the caller's company"),
    status_filter: Optional[DriverStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """List drivers of a company by last name."""
    target_company_id = scoped_company_id(caller, company_id)
    authorization_guard.enforce(caller, Permission.DRIVERS_READ, target_company_id)
    
    filters = [Driver.company_id == target_company_id]
    if status_filter is not None:
        filters.append(Driver.status == status_filter)
    
    total_result = await db.execute(select(func.count(Driver.id)).where(*filters))
    total = total_result.scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        select(Driver).where(*filters)
        .order_by(Driver.last_name, Driver.first_name, Driver.id)
        .offset(offset).limit(page_size)
    )
    drivers = result.scalars().all()
    
    return DriverListResponse(
        drivers=[DriverResponse.model_validate(d) for d in drivers],
        total=total,
        page=page,
        page_size=page_size
    )


@router.post("", response_model=DriverResponse, status_code=status.HTTP_201_CREATED)
async def create_driver(
    driver_data: DriverCreate,
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    target_company_id = scoped_company_id(caller, driver_data.company_id)
    authorization_guard.enforce(caller, Permission.DRIVERS_CREATE, target_company_id)
    
    driver = Driver(
        company_id=target_company_id,
        **driver_data.model_dump(exclude={"company_id"}),
        status=DriverStatus.ACTIVE,
    )
    db.add(driver)
    await db.flush()
    
    log_event(
        db,
        action=AuditAction.DRIVER_CREATED,
        actor_id=caller.id,
        company_id=target_company_id,
        entity_type="driver",
        entity_id=driver.id,
        metadata={"name": driver.full_name},
    )
    await db.commit()
    await db.refresh(driver)
    
    return DriverResponse.model_validate(driver)


@router.get("/{driver_id}", response_model=DriverResponse)
async def get_driver(
    driver_id: int = Path(..., description="Driver ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    driver = await _get_driver(db, driver_id)
    authorization_guard.enforce(caller, Permission.DRIVERS_READ, driver.company_id)
    return DriverResponse.model_validate(driver)


@router.patch("/{driver_id}", response_model=DriverResponse)
async def update_driver(
    update_data: DriverUpdate,
    driver_id: int = Path(..., description="Driver ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Update driver details or status."""
    driver = await _get_driver(db, driver_id)
    authorization_guard.enforce(caller, Permission.DRIVERS_UPDATE, driver.company_id)
    
    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
    fields = sorted(changes)
    previous_status = DriverStatus(driver.status).value
    if "status" in changes:
        await AssignmentLedger(db).set_driver_status(driver, changes.pop("status"))
    
    for field, value in changes.items():
        setattr(driver, field, value)
    
    log_event(
        db,
        action=AuditAction.DRIVER_UPDATED,
        actor_id=caller.id,
        company_id=driver.company_id,
        entity_type="driver",
        entity_id=driver.id,
        metadata={"fields": fields, "previous_status": previous_status},
    )
    await db.commit()
    await db.refresh(driver)
    
    return DriverResponse.model_validate(driver)


@router.delete("/{driver_id}", response_model=DriverResponse)
async def deactivate_driver(
    driver_id: int = Path(..., description="Driver ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Soft delete: the driver is set inactive. Refused while an assignment is active."""
    driver = await _get_driver(db, driver_id)
    authorization_guard.enforce(caller, Permission.DRIVERS_DELETE, driver.company_id)
    
    await AssignmentLedger(db).set_driver_status(driver, DriverStatus.INACTIVE)
    
    log_event(
        db,
        action=AuditAction.DRIVER_DEACTIVATED,
        actor_id=caller.id,
        company_id=driver.company_id,
        entity_type="driver",
        entity_id=driver.id,
    )
    await db.commit()
    await db.refresh(driver)
    
    return DriverResponse.model_validate(driver)
