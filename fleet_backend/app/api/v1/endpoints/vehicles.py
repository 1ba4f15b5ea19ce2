"""
Vehicle API endpoints.

Vehicles are company scoped. Status changes that would contradict an active
assignment are rejected; ASSIGNED is set only by the assignment ledger.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func
from fleet_backend.app.db.session import get_db
from fleet_backend.app.models.vehicle import Vehicle
from fleet_backend.app.models.profile import Profile
from fleet_backend.app.models.enums import VehicleStatus
from fleet_backend.app.schemas.vehicle import (
    VehicleCreate, VehicleUpdate, VehicleResponse, VehicleListResponse, VehicleStatusCounts
)
from fleet_backend.app.core.dependencies import get_caller
from fleet_backend.app.core.exceptions import ResourceNotFoundError
from fleet_backend.app.core.guards import authorization_guard, scoped_company_id
from fleet_backend.app.core.permissions import Permission
from fleet_backend.app.services.assignment_ledger import AssignmentLedger
from fleet_backend.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


async def _get_vehicle(db: AsyncSession, vehicle_id: int) -> Vehicle:
    vehicle = await db.get(Vehicle, vehicle_id)
    if not vehicle:
        raise ResourceNotFoundError("Vehicle", vehicle_id)
    return vehicle


@router.get("", response_model=VehicleListResponse)
async def list_vehicles(
    company_id: Optional[int] = Query(None, description="Defaults to the caller's company"),
    status_filter: Optional[VehicleStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """List vehicles of a company, newest first."""
    target_company_id = scoped_company_id(caller, company_id)
    authorization_guard.enforce(caller, Permission.VEHICLES_READ, target_company_id)
    
    filters = [Vehicle.company_id == target_company_id]
    if status_filter is not None:
        filters.append(Vehicle.status == status_filter)
    
    total_result = await db.execute(select(func.count(Vehicle.id)).where(*filters))
    total = total_result.scalar()
    
    offset = (page - 1) * page_size
    result = await db.execute(
        select(Vehicle).where(*filters)
        .order_by(Vehicle.created_at.desc(), Vehicle.id.desc())
        .offset(offset).limit(page_size)
    )
    vehicles = result.scalars().all()
    
    return VehicleListResponse(
        vehicles=[VehicleResponse.model_validate(v) for v in vehicles],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/status-counts", response_model=VehicleStatusCounts)
async def vehicle_status_counts(
    company_id: Optional[int] = Query(None, description="Defaults to the caller's company"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Number of vehicles per status; every status is present, zero included."""
    target_company_id = scoped_company_id(caller, company_id)
    authorization_guard.enforce(caller, Permission.VEHICLES_READ, target_company_id)
    
    result = await db.execute(
        select(Vehicle.status, func.count(Vehicle.id))
        .where(Vehicle.company_id == target_company_id)
        .group_by(Vehicle.status)
    )
    counts = {s.value: 0 for s in VehicleStatus}
    for vehicle_status, count in result.all():
        counts[VehicleStatus(vehicle_status).value] = count
    
    return VehicleStatusCounts(company_id=target_company_id, counts=counts)


@router.post("", response_model=VehicleResponse, status_code=status.HTTP_201_CREATED)
async def create_vehicle(
    vehicle_data: VehicleCreate,
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """Register a vehicle. It starts out available."""
    target_company_id = scoped_company_id(caller, vehicle_data.company_id)
    authorization_guard.enforce(caller, Permission.VEHICLES_CREATE, target_company_id)
    
    vehicle = Vehicle(
        company_id=target_company_id,
        **vehicle_data.model_dump(exclude={"company_id"}),
        status=VehicleStatus.AVAILABLE,
    )
    db.add(vehicle)
    await db.flush()
    
    log_event(
        db,
        action=AuditAction.VEHICLE_CREATED,
        actor_id=caller.id,
        company_id=target_company_id,
        entity_type="vehicle",
        entity_id=vehicle.id,
        metadata={"make": vehicle.make, "model": vehicle.model, "license_plate": vehicle.license_plate},
    )
    await db.commit()
    await db.refresh(vehicle)
    
    return VehicleResponse.model_validate(vehicle)


@router.get("/{vehicle_id}", response_model=VehicleResponse)
async def get_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    vehicle = await _get_vehicle(db, vehicle_id)
    authorization_guard.enforce(caller, Permission.VEHICLES_READ, vehicle.company_id)
    return VehicleResponse.model_validate(vehicle)


@router.patch("/{vehicle_id}", response_model=VehicleResponse)
async def update_vehicle(
    update_data: VehicleUpdate,
    vehicle_id: int = Path(..., description="Vehicle ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    Update vehicle details or status.
    
    Moving to assigned is refused, and so is moving to available or
    inactive while the vehicle has an active assignment.
    """
    vehicle = await _get_vehicle(db, vehicle_id)
    authorization_guard.enforce(caller, Permission.VEHICLES_UPDATE, vehicle.company_id)
    
    changes = update_data.model_dump(exclude_unset=True, exclude_none=True)
    fields = sorted(changes)
    previous_status = VehicleStatus(vehicle.status).value
    if "status" in changes:
        await AssignmentLedger(db).set_vehicle_status(vehicle, changes.pop("status"))
    
    for field, value in changes.items():
        setattr(vehicle, field, value)
    
    log_event(
        db,
        action=AuditAction.VEHICLE_UPDATED,
        actor_id=caller.id,
        company_id=vehicle.company_id,
        entity_type="vehicle",
        entity_id=vehicle.id,
        metadata={"fields": fields, "previous_status": previous_status},
    )
    await db.commit()
    await db.refresh(vehicle)
    
    return VehicleResponse.model_validate(vehicle)


@router.delete("/{vehicle_id}", response_model=VehicleResponse)
async def deactivate_vehicle(
    vehicle_id: int = Path(..., description="Vehicle ID"),
    caller: Optional[Profile] = Depends(get_caller),
    db: AsyncSession = Depends(get_db)
):
    """
    Soft delete: the vehicle is set inactive and kept for assignment history.
    
    Refused while the vehicle has an active assignment.
    """
    vehicle = await _get_vehicle(db, vehicle_id)
    authorization_guard.enforce(caller, Permission.VEHICLES_DELETE, vehicle.company_id)
    
    await AssignmentLedger(db).set_vehicle_status(vehicle, VehicleStatus.INACTIVE)
    
    log_event(
        db,
        action=AuditAction.VEHICLE_DEACTIVATED,
        actor_id=caller.id,
        company_id=vehicle.company_id,
        entity_type="vehicle",
        entity_id=vehicle.id,
    )
    await db.commit()
    await db.refresh(vehicle)
    
    return VehicleResponse.model_validate(vehicle)
