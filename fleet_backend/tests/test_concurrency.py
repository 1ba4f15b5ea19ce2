"""
Concurrency Tests.

Validates that a create losing a race against a concurrent create is
rejected by the partial unique indexes and leaves no partial state, and that
status writes made on a stale read (a second end, a create racing a status
change, a status change racing a create) are refused instead of applied.

Races are reproduced deterministically: the competing request runs in its
own session and commits at a fixed point of the request under test.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError

from fleet_backend.app.core.exceptions import (
    AssignmentAlreadyEndedError,
    DriverAlreadyAssignedError,
    DriverNotAssignableError,
    StatusTransitionError,
    VehicleAlreadyAssignedError,
    VehicleNotAssignableError,
)
from fleet_backend.app.models.assignment import Assignment
from fleet_backend.app.models.audit_log import AuditLog
from fleet_backend.app.models.driver import Driver
from fleet_backend.app.models.enums import AssignmentStatus, DriverStatus, Role, VehicleStatus
from fleet_backend.app.models.vehicle import Vehicle
from fleet_backend.app.services.assignment_ledger import AssignmentLedger
from fleet_backend.app.services.audit import AuditAction
from fleet_backend.tests.factories import make_company, make_driver, make_profile, make_vehicle

START = datetime(2026, 3, 1, 8, 0, tzinfo=timezone.utc)


async def _skip_prechecks(self, driver_id, vehicle_id):
    return None


@pytest.fixture
def racing_ledger(mocker):
    mocker.patch.object(AssignmentLedger, "_check_no_active_assignments", _skip_prechecks)


@pytest.mark.asyncio
async def test_partial_index_allows_single_active_row_per_vehicle(db_session):
    company = await make_company(db_session)
    admin = await make_profile(db_session, company)
    driver_one = await make_driver(db_session, company)
    driver_two = await make_driver(db_session, company, first_name="Sam")
    vehicle = await make_vehicle(db_session, company)

    db_session.add(Assignment(
        driver_id=driver_one.id, vehicle_id=vehicle.id, status=AssignmentStatus.ENDED,
        start_date=START, end_date=START, assigned_by=admin.id,
    ))
    db_session.add(Assignment(
        driver_id=driver_two.id, vehicle_id=vehicle.id, status=AssignmentStatus.ENDED,
        start_date=START, end_date=START, assigned_by=admin.id,
    ))
    db_session.add(Assignment(
        driver_id=driver_one.id, vehicle_id=vehicle.id, status=AssignmentStatus.ACTIVE,
        start_date=START, assigned_by=admin.id,
    ))
    await db_session.commit()

    db_session.add(Assignment(
        driver_id=driver_two.id, vehicle_id=vehicle.id, status=AssignmentStatus.ACTIVE,
        start_date=START, assigned_by=admin.id,
    ))
    with pytest.raises(IntegrityError):
        await db_session.commit()
    await db_session.rollback()


@pytest.mark.asyncio
async def test_losing_vehicle_race_reports_vehicle_already_assigned(db_session, racing_ledger):
    company = await make_company(db_session)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    winner = await make_driver(db_session, company, first_name="Wyn")
    loser = await make_driver(db_session, company, first_name="Lou")
    vehicle = await make_vehicle(db_session, company)
    loser_id, vehicle_id = loser.id, vehicle.id

    # The winning create has inserted its row but not yet touched the vehicle
    db_session.add(Assignment(
        driver_id=winner.id, vehicle_id=vehicle.id, status=AssignmentStatus.ACTIVE,
        start_date=START, assigned_by=dispatcher.id,
    ))
    await db_session.commit()

    with pytest.raises(VehicleAlreadyAssignedError):
        await AssignmentLedger(db_session).create(dispatcher, loser_id, vehicle_id, START)

    # Nothing of the losing create survived
    await db_session.refresh(vehicle)
    await db_session.refresh(loser)
    assert vehicle.status == VehicleStatus.AVAILABLE
    assert loser.current_assignment_id is None

    active = await db_session.execute(
        select(func.count(Assignment.id)).where(
            Assignment.vehicle_id == vehicle_id, Assignment.status == AssignmentStatus.ACTIVE
        )
    )
    assert active.scalar() == 1
    audits = await db_session.execute(select(func.count(AuditLog.id)))
    assert audits.scalar() == 0


@pytest.mark.asyncio
async def test_losing_driver_race_reports_driver_already_assigned(db_session, racing_ledger):
    company = await make_company(db_session)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    driver = await make_driver(db_session, company)
    taken = await make_vehicle(db_session, company, plate="FLT-001")
    free = await make_vehicle(db_session, company, plate="FLT-002")
    driver_id, free_id = driver.id, free.id

    db_session.add(Assignment(
        driver_id=driver.id, vehicle_id=taken.id, status=AssignmentStatus.ACTIVE,
        start_date=START, assigned_by=dispatcher.id,
    ))
    await db_session.commit()

    with pytest.raises(DriverAlreadyAssignedError):
        await AssignmentLedger(db_session).create(dispatcher, driver_id, free_id, START)

    await db_session.refresh(free)
    assert free.status == VehicleStatus.AVAILABLE


@pytest.mark.asyncio
async def test_ledger_session_recovers_after_lost_race(db_session, racing_ledger):
    company = await make_company(db_session)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    winner = await make_driver(db_session, company, first_name="Wyn")
    loser = await make_driver(db_session, company, first_name="Lou")
    contested = await make_vehicle(db_session, company, plate="FLT-001")
    spare = await make_vehicle(db_session, company, plate="FLT-002")
    dispatcher_id, loser_id = dispatcher.id, loser.id
    contested_id, spare_id = contested.id, spare.id

    db_session.add(Assignment(
        driver_id=winner.id, vehicle_id=contested.id, status=AssignmentStatus.ACTIVE,
        start_date=START, assigned_by=dispatcher.id,
    ))
    await db_session.commit()

    ledger = AssignmentLedger(db_session)
    with pytest.raises(VehicleAlreadyAssignedError):
        await ledger.create(dispatcher, loser_id, contested_id, START)

    await db_session.refresh(dispatcher)
    assignment = await ledger.create(dispatcher, loser_id, spare_id, START)
    assert assignment.vehicle_id == spare_id
    assert assignment.assigned_by == dispatcher_id


def commit_during_prechecks(mocker, competing_request):
    """Run competing_request right after create() has validated its reads."""
    original = AssignmentLedger._check_no_active_assignments

    async def prechecks_then_compete(self, driver_id, vehicle_id):
        await original(self, driver_id, vehicle_id)
        await competing_request()

    mocker.patch.object(AssignmentLedger, "_check_no_active_assignments", prechecks_then_compete)


async def _count(session, query):
    result = await session.execute(query)
    return result.scalar()


@pytest.mark.asyncio
async def test_stale_second_end_does_not_release_reassigned_vehicle(db_session, session_factory):
    company = await make_company(db_session)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    first = await make_driver(db_session, company, first_name="Ana")
    second = await make_driver(db_session, company, first_name="Ben")
    vehicle = await make_vehicle(db_session, company)
    first_id, second_id, vehicle_id = first.id, second.id, vehicle.id

    assignment = await AssignmentLedger(db_session).create(dispatcher, first_id, vehicle_id, START)
    assignment_id = assignment.id

    async with session_factory() as stale_session, session_factory() as other_session:
        stale_ledger = AssignmentLedger(stale_session)
        seen = await stale_ledger.get(dispatcher, assignment_id)
        assert seen.status == AssignmentStatus.ACTIVE

        await AssignmentLedger(db_session).end(dispatcher, assignment_id)
        replacement = await AssignmentLedger(other_session).create(dispatcher, second_id, vehicle_id, START)
        replacement_id = replacement.id

        with pytest.raises(AssignmentAlreadyEndedError):
            await stale_ledger.end(dispatcher, assignment_id)

    async with session_factory() as check:
        assert (await check.get(Vehicle, vehicle_id)).status == VehicleStatus.ASSIGNED
        assert (await check.get(Driver, second_id)).current_assignment_id == replacement_id

        active = await check.execute(
            select(Assignment.id).where(
                Assignment.vehicle_id == vehicle_id, Assignment.status == AssignmentStatus.ACTIVE
            )
        )
        assert active.scalars().all() == [replacement_id]

        ended_audits = await _count(
            check,
            select(func.count(AuditLog.id)).where(AuditLog.action == AuditAction.ASSIGNMENT_ENDED),
        )
        assert ended_audits == 1


@pytest.mark.asyncio
async def test_vehicle_sent_to_maintenance_during_create_keeps_maintenance(db_session, session_factory, mocker):
    company = await make_company(db_session)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    driver = await make_driver(db_session, company)
    vehicle = await make_vehicle(db_session, company)
    driver_id, vehicle_id = driver.id, vehicle.id

    async def send_to_maintenance():
        async with session_factory() as other:
            other_vehicle = await other.get(Vehicle, vehicle_id)
            await AssignmentLedger(other).set_vehicle_status(other_vehicle, VehicleStatus.MAINTENANCE)
            await other.commit()

    commit_during_prechecks(mocker, send_to_maintenance)

    with pytest.raises(VehicleNotAssignableError):
        await AssignmentLedger(db_session).create(dispatcher, driver_id, vehicle_id, START)

    async with session_factory() as check:
        assert (await check.get(Vehicle, vehicle_id)).status == VehicleStatus.MAINTENANCE
        assert (await check.get(Driver, driver_id)).current_assignment_id is None
        assert await _count(check, select(func.count(Assignment.id))) == 0
        assert await _count(check, select(func.count(AuditLog.id))) == 0


@pytest.mark.asyncio
async def test_driver_suspended_during_create_rolls_back_vehicle(db_session, session_factory, mocker):
    company = await make_company(db_session)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    driver = await make_driver(db_session, company)
    vehicle = await make_vehicle(db_session, company)
    driver_id, vehicle_id = driver.id, vehicle.id

    async def suspend_driver():
        async with session_factory() as other:
            other_driver = await other.get(Driver, driver_id)
            await AssignmentLedger(other).set_driver_status(other_driver, DriverStatus.SUSPENDED)
            await other.commit()

    commit_during_prechecks(mocker, suspend_driver)

    with pytest.raises(DriverNotAssignableError):
        await AssignmentLedger(db_session).create(dispatcher, driver_id, vehicle_id, START)

    async with session_factory() as check:
        assert (await check.get(Vehicle, vehicle_id)).status == VehicleStatus.AVAILABLE
        assert (await check.get(Driver, driver_id)).status == DriverStatus.SUSPENDED
        assert await _count(check, select(func.count(Assignment.id))) == 0


@pytest.mark.asyncio
async def test_status_update_on_stale_vehicle_is_refused(db_session, session_factory):
    company = await make_company(db_session)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    driver = await make_driver(db_session, company)
    vehicle = await make_vehicle(db_session, company)
    driver_id, vehicle_id = driver.id, vehicle.id

    async with session_factory() as editor:
        stale_vehicle = await editor.get(Vehicle, vehicle_id)
        assert stale_vehicle.status == VehicleStatus.AVAILABLE

        await AssignmentLedger(db_session).create(dispatcher, driver_id, vehicle_id, START)

        with pytest.raises(StatusTransitionError):
            await AssignmentLedger(editor).set_vehicle_status(stale_vehicle, VehicleStatus.MAINTENANCE)

    async with session_factory() as check:
        assert (await check.get(Vehicle, vehicle_id)).status == VehicleStatus.ASSIGNED


@pytest.mark.asyncio
async def test_status_update_without_competing_write_is_applied(db_session, session_factory):
    company = await make_company(db_session)
    vehicle = await make_vehicle(db_session, company)
    vehicle_id = vehicle.id

    await AssignmentLedger(db_session).set_vehicle_status(vehicle, VehicleStatus.OUT_OF_SERVICE)
    await db_session.commit()

    async with session_factory() as check:
        assert (await check.get(Vehicle, vehicle_id)).status == VehicleStatus.OUT_OF_SERVICE
