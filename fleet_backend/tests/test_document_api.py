"""
Integration tests for the driver document endpoints.
"""

from datetime import date, timedelta

import pytest

from fleet_backend.app.models.enums import DriverStatus, Role
from fleet_backend.tests.factories import auth_headers, make_company, make_driver, make_profile


@pytest.fixture
async def acme(db_session):
    company = await make_company(db_session, name="Acme")
    manager = await make_profile(db_session, company, role=Role.MANAGER)
    driver = await make_driver(db_session, company)
    return company, manager, driver


def upload_request(driver_id, **overrides):
    body = {
        "driver_id": driver_id,
        "filename": "license.pdf",
        "content_type": "application/pdf",
        "size": 1024,
        "document_type": "license",
    }
    body.update(overrides)
    return body


@pytest.mark.asyncio
async def test_upload_url_and_download(client, acme):
    _, manager, driver = acme
    headers = auth_headers(manager)

    response = await client.post("/v1/documents/upload-url", headers=headers, json=upload_request(driver.id))
    assert response.status_code == 201
    data = response.json()
    assert "/object/upload/sign/driver-documents/documents/" in data["upload_url"]
    assert data["document"]["status"] == "valid"
    document_id = data["document"]["id"]

    response = await client.get(f"/v1/documents/{document_id}", headers=headers)
    assert response.status_code == 200
    assert "/object/download/sign/" in response.json()["url"]

    response = await client.get(f"/v1/drivers/{driver.id}/documents", headers=headers)
    assert response.json()["total"] == 1


@pytest.mark.asyncio
async def test_status_is_derived_from_expiry(client, acme):
    _, manager, driver = acme
    headers = auth_headers(manager)
    today = date.today()

    for name, expiry in [
        ("old.pdf", today - timedelta(days=2)),
        ("soon.pdf", today + timedelta(days=10)),
        ("later.pdf", today + timedelta(days=120)),
    ]:
        response = await client.post(
            "/v1/documents/upload-url", headers=headers,
            json=upload_request(driver.id, filename=name, expiry_date=expiry.isoformat()),
        )
        assert response.status_code == 201

    documents = (await client.get(f"/v1/drivers/{driver.id}/documents", headers=headers)).json()["documents"]
    statuses = {d["file_name"]: d["status"] for d in documents}
    assert statuses == {"old.pdf": "expired", "soon.pdf": "expiring_soon", "later.pdf": "valid"}


@pytest.mark.asyncio
async def test_inactive_driver_documents_are_refused(client, db_session, acme):
    company, manager, _ = acme
    inactive = await make_driver(db_session, company, status=DriverStatus.INACTIVE)

    response = await client.post(
        "/v1/documents/upload-url", headers=auth_headers(manager), json=upload_request(inactive.id)
    )
    assert response.status_code == 403
    assert response.json()["error_code"] == "ERR_DOC_001"
    assert response.json()["message"] == "Cannot manage documents for inactive drivers"


@pytest.mark.asyncio
async def test_invalid_type_and_size(client, acme):
    _, manager, driver = acme
    headers = auth_headers(manager)

    response = await client.post(
        "/v1/documents/upload-url", headers=headers,
        json=upload_request(driver.id, filename="x.gif", content_type="image/gif"),
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "ERR_DOC_002"

    response = await client.post(
        "/v1/documents/upload-url", headers=headers,
        json=upload_request(driver.id, size=26 * 1024 * 1024),
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_other_company_cannot_touch_documents(client, db_session, acme):
    _, manager, driver = acme
    document = (await client.post(
        "/v1/documents/upload-url", headers=auth_headers(manager), json=upload_request(driver.id)
    )).json()["document"]
    other = await make_company(db_session, name="Globex")
    outsider = await make_profile(db_session, other, role=Role.MANAGER)
    headers = auth_headers(outsider)

    assert (await client.post("/v1/documents/upload-url", headers=headers, json=upload_request(driver.id))).status_code == 403
    assert (await client.get(f"/v1/documents/{document['id']}", headers=headers)).status_code == 403
    assert (await client.delete(f"/v1/documents/{document['id']}", headers=headers)).status_code == 403


@pytest.mark.asyncio
async def test_delete_document(client, db_session, acme):
    company, manager, driver = acme
    dispatcher = await make_profile(db_session, company, role=Role.DISPATCHER)
    document = (await client.post(
        "/v1/documents/upload-url", headers=auth_headers(dispatcher), json=upload_request(driver.id)
    )).json()["document"]

    response = await client.delete(f"/v1/documents/{document['id']}", headers=auth_headers(dispatcher))
    assert response.status_code == 403

    response = await client.delete(f"/v1/documents/{document['id']}", headers=auth_headers(manager))
    assert response.status_code == 200

    response = await client.get(f"/v1/documents/{document['id']}", headers=auth_headers(manager))
    assert response.status_code == 404
