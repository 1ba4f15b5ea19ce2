"""
Assignment ledger.

Owns the lifecycle of driver to vehicle assignments. Creating or ending an
assignment touches three rows (the assignment, the vehicle status and the
driver's current assignment pointer) plus an audit entry, and all of them
are committed in one transaction or not at all.

At most one active assignment per driver and per vehicle is guaranteed by
the partial unique indexes on the assignments table. The checks below only
make the common rejections cheap and give them precise errors; a create that
loses a race against a concurrent create is caught at flush time and
reported exactly like the pre-checked case.

Status fields are never written from a value read earlier in the request.
Every status transition is a conditional UPDATE on the status the decision
was based on, and a zero rowcount means a concurrent request got there
first.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import select, desc, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fleet_backend.app.core.exceptions import (
    AssignmentAlreadyEndedError,
    CompanyMismatchError,
    DriverAlreadyAssignedError,
    DriverNotAssignableError,
    ResourceNotFoundError,
    StatusTransitionError,
    VehicleAlreadyAssignedError,
    VehicleNotAssignableError,
)
from fleet_backend.app.core.guards import AuthorizationGuard, authorization_guard
from fleet_backend.app.core.permissions import Permission
from fleet_backend.app.models.assignment import Assignment
from fleet_backend.app.models.driver import Driver
from fleet_backend.app.models.enums import AssignmentStatus, DriverStatus, VehicleStatus
from fleet_backend.app.models.vehicle import Vehicle
from fleet_backend.app.services.audit import AuditAction, log_event

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AssignmentLedger:
    """
    Creates, ends and reads assignments on behalf of an actor profile.

    Usage:
        ledger = AssignmentLedger(db)
        assignment = await ledger.create(caller, driver_id, vehicle_id, start_date)
        await ledger.end(caller, assignment.id)
    """

    def __init__(
        self,
        db: AsyncSession,
        guard: AuthorizationGuard = authorization_guard,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.db = db
        self.guard = guard
        self.clock = clock

    async def create(
        self,
        actor,
        driver_id: int,
        vehicle_id: int,
        start_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Assignment:
        """
        Assign a vehicle to a driver.

        Preconditions, first failure wins:
        1. Driver exists and is ACTIVE
        2. Vehicle exists and belongs to the driver's company
        3. Vehicle is AVAILABLE
        4. Driver has no active assignment
        5. Vehicle has no active assignment

        The actor is authorized for `assignments:create` against the driver's
        company before any precondition is evaluated on its data.

        Raises:
            AuthenticationError, InsufficientPermissionsError, CrossTenantAccessError
            DriverNotAssignableError, CompanyMismatchError, VehicleNotAssignableError,
            DriverAlreadyAssignedError, VehicleAlreadyAssignedError
        """
        driver = await self.db.get(Driver, driver_id)
        if driver is None:
            raise DriverNotAssignableError(
                "Driver not found", details={"driver_id": driver_id}
            )

        self.guard.enforce(actor, Permission.ASSIGNMENTS_CREATE, driver.company_id)

        if driver.status != DriverStatus.ACTIVE:
            raise DriverNotAssignableError(
                f"Cannot assign a vehicle to a driver with status '{DriverStatus(driver.status).value}'",
                details={"driver_id": driver.id},
            )

        vehicle = await self.db.get(Vehicle, vehicle_id)
        if vehicle is None or vehicle.company_id != driver.company_id:
            raise CompanyMismatchError(details={"vehicle_id": vehicle_id, "driver_id": driver.id})

        if vehicle.status != VehicleStatus.AVAILABLE:
            raise VehicleNotAssignableError(
                f"Cannot assign a vehicle with status '{VehicleStatus(vehicle.status).value}'",
                details={"vehicle_id": vehicle.id},
            )

        await self._check_no_active_assignments(driver.id, vehicle.id)

        company_id = driver.company_id
        assignment = Assignment(
            driver_id=driver.id,
            vehicle_id=vehicle.id,
            status=AssignmentStatus.ACTIVE,
            start_date=start_date or self.clock(),
            end_date=None,
            assigned_by=actor.id,
            notes=notes,
        )

        try:
            self.db.add(assignment)
            await self.db.flush()  # raises IntegrityError if a concurrent create won

            claimed = await self.db.execute(
                update(Vehicle)
                .where(Vehicle.id == vehicle_id, Vehicle.status == VehicleStatus.AVAILABLE)
                .values(status=VehicleStatus.ASSIGNED)
            )
            if claimed.rowcount == 0:
                await self.db.rollback()
                raise VehicleNotAssignableError(
                    "Vehicle is no longer available", details={"vehicle_id": vehicle_id}
                )

            pointed = await self.db.execute(
                update(Driver)
                .where(Driver.id == driver_id, Driver.status == DriverStatus.ACTIVE)
                .values(current_assignment_id=assignment.id)
            )
            if pointed.rowcount == 0:
                await self.db.rollback()
                raise DriverNotAssignableError(
                    "Driver is no longer active", details={"driver_id": driver_id}
                )

            log_event(
                self.db,
                action=AuditAction.ASSIGNMENT_CREATED,
                actor_id=actor.id,
                company_id=company_id,
                entity_type="assignment",
                entity_id=assignment.id,
                metadata={"driver_id": driver_id, "vehicle_id": vehicle_id},
            )
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise await self._race_error(driver_id, vehicle_id)

        await self.db.refresh(assignment)

        logger.info(
            "Assignment %s created: driver=%s vehicle=%s company=%s by=%s",
            assignment.id, driver_id, vehicle_id, company_id, actor.id,
        )
        return assignment

    async def end(
        self,
        actor,
        assignment_id: int,
        end_date: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Assignment:
        """
        End an active assignment.

        The vehicle goes back to AVAILABLE only if it is still ASSIGNED; a
        vehicle moved to maintenance, out-of-service or inactive in the
        meantime keeps that status. Ending an already ended assignment is
        an error, not a no-op.

        Raises:
            ResourceNotFoundError: assignment does not exist
            AuthenticationError, InsufficientPermissionsError, CrossTenantAccessError
            AssignmentAlreadyEndedError
        """
        assignment = await self.db.get(Assignment, assignment_id)
        if assignment is None:
            raise ResourceNotFoundError("Assignment", assignment_id)

        driver = await self.db.get(Driver, assignment.driver_id)
        self.guard.enforce(actor, Permission.ASSIGNMENTS_END, driver.company_id)

        if assignment.status != AssignmentStatus.ACTIVE:
            raise AssignmentAlreadyEndedError(details={"assignment_id": assignment.id})

        vehicle = await self.db.get(Vehicle, assignment.vehicle_id)
        company_id = driver.company_id

        # Only the request that flips the row from active may touch the vehicle
        ended = await self.db.execute(
            update(Assignment)
            .where(Assignment.id == assignment_id, Assignment.status == AssignmentStatus.ACTIVE)
            .values(
                status=AssignmentStatus.ENDED,
                end_date=end_date or self.clock(),
                ended_by=actor.id,
                end_notes=notes,
            )
        )
        if ended.rowcount == 0:
            await self.db.rollback()
            logger.warning("Concurrent end of assignment %s rejected", assignment_id)
            raise AssignmentAlreadyEndedError(details={"assignment_id": assignment_id})

        await self.db.execute(
            update(Vehicle)
            .where(Vehicle.id == vehicle.id, Vehicle.status == VehicleStatus.ASSIGNED)
            .values(status=VehicleStatus.AVAILABLE)
        )
        await self.db.execute(
            update(Driver)
            .where(Driver.id == driver.id, Driver.current_assignment_id == assignment_id)
            .values(current_assignment_id=None)
        )
        await self.db.refresh(vehicle)

        log_event(
            self.db,
            action=AuditAction.ASSIGNMENT_ENDED,
            actor_id=actor.id,
            company_id=company_id,
            entity_type="assignment",
            entity_id=assignment.id,
            metadata={
                "driver_id": assignment.driver_id,
                "vehicle_id": assignment.vehicle_id,
                "vehicle_status": VehicleStatus(vehicle.status).value,
            },
        )
        await self.db.commit()
        await self.db.refresh(assignment)

        logger.info("Assignment %s ended by %s", assignment.id, actor.id)
        return assignment

    async def get(self, actor, assignment_id: int) -> Assignment:
        """Read one assignment (`assignments:read` on the driver's company)."""
        assignment = await self.db.get(Assignment, assignment_id)
        if assignment is None:
            raise ResourceNotFoundError("Assignment", assignment_id)

        driver = await self.db.get(Driver, assignment.driver_id)
        self.guard.enforce(actor, Permission.ASSIGNMENTS_READ, driver.company_id)
        return assignment

    async def list_for_driver(
        self,
        actor,
        driver_id: int,
        status: Optional[AssignmentStatus] = None,
    ) -> list[Assignment]:
        """Assignment history of a driver, newest first."""
        driver = await self.db.get(Driver, driver_id)
        if driver is None:
            raise ResourceNotFoundError("Driver", driver_id)

        self.guard.enforce(actor, Permission.ASSIGNMENTS_READ, driver.company_id)

        query = select(Assignment).where(Assignment.driver_id == driver_id)
        if status is not None:
            query = query.where(Assignment.status == status)
        query = query.order_by(desc(Assignment.start_date), desc(Assignment.id))

        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def active_for_driver(self, driver_id: int) -> Optional[Assignment]:
        result = await self.db.execute(
            select(Assignment).where(
                Assignment.driver_id == driver_id,
                Assignment.status == AssignmentStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def active_for_vehicle(self, vehicle_id: int) -> Optional[Assignment]:
        result = await self.db.execute(
            select(Assignment).where(
                Assignment.vehicle_id == vehicle_id,
                Assignment.status == AssignmentStatus.ACTIVE,
            )
        )
        return result.scalar_one_or_none()

    async def check_vehicle_status_change(self, vehicle: Vehicle, new_status: VehicleStatus) -> None:
        """
        Validate a plain (non-ledger) vehicle status update.

        ASSIGNED is only ever set by create(). A vehicle with an active
        assignment may go to maintenance or out-of-service (end() then leaves
        that status alone) but not back to AVAILABLE or to INACTIVE.
        """
        new_status = VehicleStatus(new_status)
        if new_status == VehicleStatus(vehicle.status):
            return
        if new_status == VehicleStatus.ASSIGNED:
            raise StatusTransitionError(
                "Vehicles become assigned only through an assignment",
                details={"vehicle_id": vehicle.id},
            )
        if new_status in (VehicleStatus.AVAILABLE, VehicleStatus.INACTIVE):
            active = await self.active_for_vehicle(vehicle.id)
            if active is not None:
                raise StatusTransitionError(
                    "Vehicle has an active assignment; end it first",
                    details={"vehicle_id": vehicle.id, "assignment_id": active.id},
                )

    async def check_driver_status_change(self, driver: Driver, new_status: DriverStatus) -> None:
        """Only ACTIVE drivers may hold an assignment, so leaving ACTIVE requires none."""
        new_status = DriverStatus(new_status)
        if new_status == DriverStatus.ACTIVE or new_status == DriverStatus(driver.status):
            return
        active = await self.active_for_driver(driver.id)
        if active is not None:
            raise StatusTransitionError(
                "Driver has an active assignment; end it first",
                details={"driver_id": driver.id, "assignment_id": active.id},
            )

    async def set_vehicle_status(self, vehicle: Vehicle, new_status: VehicleStatus) -> None:
        """
        Validate and stage a plain vehicle status update; the caller commits.

        The write is conditional on the status the vehicle was read with, so
        an assignment created or ended in between makes it fail instead of
        being overwritten.

        Raises:
            StatusTransitionError: transition not allowed, or the status changed concurrently
        """
        new_status = VehicleStatus(new_status)
        current = VehicleStatus(vehicle.status)
        await self.check_vehicle_status_change(vehicle, new_status)
        if new_status == current:
            return

        vehicle_id = vehicle.id
        result = await self.db.execute(
            update(Vehicle)
            .where(Vehicle.id == vehicle_id, Vehicle.status == current)
            .values(status=new_status)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise StatusTransitionError(
                "Vehicle status changed concurrently; reload and retry",
                details={"vehicle_id": vehicle_id},
            )

    async def set_driver_status(self, driver: Driver, new_status: DriverStatus) -> None:
        """Driver counterpart of set_vehicle_status()."""
        new_status = DriverStatus(new_status)
        current = DriverStatus(driver.status)
        await self.check_driver_status_change(driver, new_status)
        if new_status == current:
            return

        driver_id = driver.id
        conditions = [Driver.id == driver_id, Driver.status == current]
        if current == DriverStatus.ACTIVE:
            conditions.append(Driver.current_assignment_id.is_(None))
        result = await self.db.execute(
            update(Driver).where(*conditions).values(status=new_status)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise StatusTransitionError(
                "Driver status changed concurrently; reload and retry",
                details={"driver_id": driver_id},
            )

    async def _check_no_active_assignments(self, driver_id: int, vehicle_id: int) -> None:
        if await self.active_for_driver(driver_id) is not None:
            raise DriverAlreadyAssignedError(details={"driver_id": driver_id})
        if await self.active_for_vehicle(vehicle_id) is not None:
            raise VehicleAlreadyAssignedError(details={"vehicle_id": vehicle_id})

    async def _race_error(self, driver_id: int, vehicle_id: int) -> Exception:
        """Name the index a concurrent create collided with, driver first."""
        if await self.active_for_driver(driver_id) is not None:
            error = DriverAlreadyAssignedError(details={"driver_id": driver_id})
        else:
            error = VehicleAlreadyAssignedError(details={"vehicle_id": vehicle_id})
        logger.warning(
            "Concurrent assignment create rejected: driver=%s vehicle=%s error=%s",
            driver_id, vehicle_id, error.error_code,
        )
        return error
