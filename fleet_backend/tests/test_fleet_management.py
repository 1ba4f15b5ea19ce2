"""
Integration tests for vehicles and drivers.
"""

import pytest

from fleet_backend.app.models.enums import DriverStatus, Role, VehicleStatus
from fleet_backend.tests.factories import auth_headers, make_company, make_driver, make_profile, make_vehicle

VEHICLE = {"make": "Mercedes", "model": "Sprinter", "year": 2023, "license_plate": "ACM-100"}


@pytest.fixture
async def acme(db_session):
    company = await make_company(db_session, name="Acme")
    manager = await make_profile(db_session, company, role=Role.MANAGER)
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    viewer = await make_profile(db_session, company, role=Role.USER)
    return company, manager, dispatcher, viewer


@pytest.mark.asyncio
async def test_manager_registers_vehicle(client, acme):
    company, manager, _, _ = acme

    response = await client.post("/v1/vehicles", headers=auth_headers(manager), json=VEHICLE)

    assert response.status_code == 201
    data = response.json()
    assert data["company_id"] == company.id
    assert data["status"] == "available"


@pytest.mark.asyncio
async def test_viewer_cannot_register_vehicle(client, acme):
    _, _, _, viewer = acme
    response = await client.post("/v1/vehicles", headers=auth_headers(viewer), json=VEHICLE)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_manager_cannot_register_vehicle_for_other_company(client, db_session, acme):
    _, manager, _, _ = acme
    other = await make_company(db_session, name="Globex")

    response = await client.post(
        "/v1/vehicles", headers=auth_headers(manager), json={**VEHICLE, "company_id": other.id}
    )
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_002"


@pytest.mark.asyncio
async def test_vehicle_list_only_shows_own_company(client, db_session, acme):
    company, _, _, viewer = acme
    other = await make_company(db_session, name="Globex")
    await make_vehicle(db_session, company, plate="ACM-1")
    await make_vehicle(db_session, other, plate="GLX-1")

    response = await client.get("/v1/vehicles", headers=auth_headers(viewer))
    assert response.status_code == 200
    assert [v["license_plate"] for v in response.json()["vehicles"]] == ["ACM-1"]

    response = await client.get(f"/v1/vehicles?company_id={other.id}", headers=auth_headers(viewer))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_may_list_other_company(client, db_session, acme):
    company, _, _, _ = acme
    other = await make_company(db_session, name="Globex")
    admin = await make_profile(db_session, other, role=Role.ADMIN)
    await make_vehicle(db_session, company, plate="ACM-1")

    response = await client.get(f"/v1/vehicles?company_id={company.id}", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_foreign_vehicle_is_forbidden_not_hidden(client, db_session, acme):
    _, manager, _, _ = acme
    other = await make_company(db_session, name="Globex")
    vehicle = await make_vehicle(db_session, other, plate="GLX-1")

    response = await client.get(f"/v1/vehicles/{vehicle.id}", headers=auth_headers(manager))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_status_counts_include_every_status(client, db_session, acme):
    company, _, _, viewer = acme
    await make_vehicle(db_session, company, plate="A")
    await make_vehicle(db_session, company, plate="B")
    await make_vehicle(db_session, company, status=VehicleStatus.MAINTENANCE, plate="C")

    response = await client.get("/v1/vehicles/status-counts", headers=auth_headers(viewer))

    assert response.status_code == 200
    assert response.json()["counts"] == {
        "available": 2, "assigned": 0, "maintenance": 1, "out-of-service": 0, "inactive": 0,
    }


@pytest.mark.asyncio
async def test_dispatcher_updates_vehicle_status(client, db_session, acme):
    company, _, dispatcher, _ = acme
    vehicle = await make_vehicle(db_session, company)

    response = await client.patch(
        f"/v1/vehicles/{vehicle.id}", headers=auth_headers(dispatcher), json={"status": "maintenance", "mileage": 1200}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "maintenance"
    assert response.json()["mileage"] == 1200


@pytest.mark.asyncio
async def test_vehicle_cannot_be_patched_to_assigned(client, db_session, acme):
    company, manager, _, _ = acme
    vehicle = await make_vehicle(db_session, company)

    response = await client.patch(
        f"/v1/vehicles/{vehicle.id}", headers=auth_headers(manager), json={"status": "assigned"}
    )
    assert response.status_code == 409
    assert response.json()["error_code"] == "ERR_STATE_001"


@pytest.mark.asyncio
async def test_dispatcher_cannot_delete_vehicle(client, db_session, acme):
    company, _, dispatcher, _ = acme
    vehicle = await make_vehicle(db_session, company)

    response = await client.delete(f"/v1/vehicles/{vehicle.id}", headers=auth_headers(dispatcher))
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_PERM_001"


@pytest.mark.asyncio
async def test_delete_vehicle_is_soft(client, db_session, acme):
    company, manager, _, _ = acme
    vehicle = await make_vehicle(db_session, company)

    response = await client.delete(f"/v1/vehicles/{vehicle.id}", headers=auth_headers(manager))
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"

    response = await client.get(f"/v1/vehicles/{vehicle.id}", headers=auth_headers(manager))
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_unknown_vehicle(client, acme):
    _, manager, _, _ = acme
    response = await client.get("/v1/vehicles/12345", headers=auth_headers(manager))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_driver_crud(client, acme):
    company, manager, dispatcher, viewer = acme

    response = await client.post("/v1/drivers", headers=auth_headers(manager), json={
        "first_name": "Dana", "last_name": "Driver", "license_number": "DL-1", "license_expiry": "2030-01-01",
    })
    assert response.status_code == 201
    driver = response.json()
    assert driver["status"] == "active"
    assert driver["current_assignment_id"] is None

    response = await client.patch(
        f"/v1/drivers/{driver['id']}", headers=auth_headers(dispatcher), json={"phone": "555-0100"}
    )
    assert response.status_code == 200
    assert response.json()["phone"] == "555-0100"

    response = await client.get("/v1/drivers", headers=auth_headers(viewer))
    assert response.json()["total"] == 1

    response = await client.delete(f"/v1/drivers/{driver['id']}", headers=auth_headers(dispatcher))
    assert response.status_code == 403

    response = await client.delete(f"/v1/drivers/{driver['id']}", headers=auth_headers(manager))
    assert response.status_code == 200
    assert response.json()["status"] == "inactive"


@pytest.mark.asyncio
async def test_driver_list_filters_by_status(client, db_session, acme):
    company, manager, _, _ = acme
    await make_driver(db_session, company, first_name="Ann")
    await make_driver(db_session, company, first_name="Bob", status=DriverStatus.SUSPENDED)

    response = await client.get("/v1/drivers?status=suspended", headers=auth_headers(manager))
    assert [d["first_name"] for d in response.json()["drivers"]] == ["Bob"]
