"""HTTP-level tests: routing, authorization and the error envelope."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import IntegrityError

from src.api.main import app
from src.core.deps import get_tenant_session
from src.core.roles import ADMIN, LIBRARIAN, SUPERADMIN, TEACHER
from src.core.security import create_access_token
from src.db.tenant_manager import TenantNotFoundError

LIBRARY = "/api/v1/schools/greenhill/portal/library"
DORMITORIES = "/api/v1/schools/greenhill/portal/dormitory/dormitories"


def _auth(role, school_code="greenhill"):
    token = create_access_token(str(uuid4()), role, None if role == SUPERADMIN else school_code)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def client(mock_db):
    async def _session():
        yield mock_db

    app.dependency_overrides[get_tenant_session] = _session
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    response = client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"message": "Healthy"}
    assert response.headers["X-Correlation-ID"]


def test_correlation_id_is_echoed(client):
    response = client.get("/api/v1/health", headers={"X-Correlation-ID": "req-42"})
    assert response.headers["X-Correlation-ID"] == "req-42"


def test_missing_token(client):
    response = client.get(f"{LIBRARY}/books")
    assert response.status_code == 401
    body = response.json()
    assert body["error"]["type"] == "http_error"
    assert body["school_code"] == "greenhill"
    assert body["path"] == "/api/v1/schools/greenhill/portal/library/books"


def test_token_of_another_school(client):
    response = client.get(f"{LIBRARY}/books", headers=_auth(LIBRARIAN, "riverside"))
    assert response.status_code == 403
    assert response.json()["error"]["message"] == "Unauthorized for this school"


def test_invalid_library_action(client, mock_db):
    response = client.post(f"{LIBRARY}/transactions", json={"action": "renew"}, headers=_auth(LIBRARIAN))
    assert response.status_code == 400
    body = response.json()
    assert body["error"]["type"] == "bad_request"
    assert body["error"]["message"] == "Invalid action. Must be 'borrow' or 'return'"
    mock_db.commit.assert_not_awaited()


def test_unknown_school(client):
    async def _missing():
        raise TenantNotFoundError("nowhere")
        yield  # pragma: no cover

    app.dependency_overrides[get_tenant_session] = _missing
    response = client.get(
        "/api/v1/schools/nowhere/portal/library/books", headers=_auth(LIBRARIAN, "nowhere")
    )
    assert response.status_code == 404
    body = response.json()
    assert body["error"]["type"] == "school_not_found"
    assert body["school_code"] == "nowhere"


def test_superadmin_cannot_submit_marks(client):
    response = client.post(
        "/api/v1/schools/greenhill/portal/marks/batch",
        json={"assessment_id": str(uuid4()), "marks": []},
        headers=_auth(SUPERADMIN),
    )
    assert response.status_code == 403


def test_class_term_report_is_admin_only(client, mock_db):
    params = {"class_id": str(uuid4()), "academic_year_id": str(uuid4())}
    response = client.get(
        "/api/v1/schools/greenhill/portal/reports/class-term", params=params, headers=_auth(TEACHER)
    )
    assert response.status_code == 403
    mock_db.execute.assert_not_awaited()


def test_superadmin_may_manage_any_school(client):
    response = client.get(DORMITORIES, headers=_auth(SUPERADMIN))
    assert response.status_code == 200
    assert response.json() == []


def test_validation_error(client):
    response = client.post(DORMITORIES, json={"name": "Kilimanjaro", "type": "Staff"}, headers=_auth(ADMIN))
    assert response.status_code == 422
    assert response.json()["error"]["type"] == "validation_error"


def test_integrity_error_maps_to_conflict(client, mock_db):
    mock_db.flush.side_effect = IntegrityError("INSERT INTO dormitories", {}, Exception("duplicate key"))
    response = client.post(DORMITORIES, json={"name": "Kilimanjaro", "type": "Girls"}, headers=_auth(ADMIN))
    assert response.status_code == 409
    assert response.json()["error"]["type"] == "conflict"


def test_unexpected_error_is_wrapped(mock_db):
    async def _session():
        yield mock_db

    mock_db.flush.side_effect = RuntimeError("disk full")
    app.dependency_overrides[get_tenant_session] = _session
    try:
        response = TestClient(app, raise_server_exceptions=False).post(
            DORMITORIES, json={"name": "Kilimanjaro", "type": "Girls"}, headers=_auth(ADMIN)
        )
    finally:
        app.dependency_overrides.clear()
    assert response.status_code == 500
    body = response.json()
    assert body["error"]["type"] == "internal_error"
    assert "disk full" not in body["error"]["message"]
