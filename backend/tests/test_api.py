"""
HTTP-level tests for the users and activity endpoints.

The Supabase wrapper and the remote REST client are swapped for in-memory
fakes through FastAPI dependency overrides.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from conftest import LOCAL_REF, FakeDBClient, FakeRestClient
from watchtower.core.config import settings
from watchtower.main import app
from watchtower.services.clients.project_rest_client import ProjectClientError, get_project_rest_client
from watchtower.services.db_client import get_db_client


@pytest.fixture
def db(registry_rows):
    return FakeDBClient(
        registry_rows=registry_rows,
        tables={
            "wt_users_view": [
                {"id": "w1", "first_name": "Wendy", "last_name": "Tower", "email": "wendy@wt.dev",
                 "status": "active", "created_at": "2024-02-01T00:00:00Z"},
            ]
        },
    )


@pytest.fixture
def rest():
    return FakeRestClient(
        responses={
            "BuybidHQ": [{"id": "b1", "name": "Bob Bidder", "email": "bob@buybid.com", "role": "dealer",
                          "status": "suspended", "created_at": "2024-03-01T00:00:00Z"}],
            "SalesboardHQ": ProjectClientError("SalesboardHQ", 500, "boom", action="Fetch"),
            "Demolight": [{"id": "d1", "first_name": "Dee", "is_active": False, "created_at": "2023-01-01T00:00:00Z"}],
        }
    )


@pytest.fixture
def client(db, rest, monkeypatch):
    monkeypatch.setattr(settings, "WATCHTOWER_PROJECT_REF", LOCAL_REF)
    monkeypatch.setattr(settings, "USERS_TABLE_OVERRIDES", {})
    monkeypatch.setenv("SERVICE_KEY_buybid", "key-buybid")
    monkeypatch.setenv("SERVICE_KEY_salesboard", "key-salesboard")
    monkeypatch.setenv("SERVICE_KEY_demolight", "key-demolight")
    app.dependency_overrides[get_db_client] = lambda: db
    app.dependency_overrides[get_project_rest_client] = lambda: rest
    yield TestClient(app)
    app.dependency_overrides.clear()


# ============================================================================
# GET /users
# ============================================================================

def test_list_users_merges_reachable_projects(client):
    response = client.get("/api/v1/users")

    assert response.status_code == 200
    body = response.json()
    assert [(u["app"], u["id"]) for u in body] == [("BuybidHQ", "b1"), ("Watchtower", "w1"), ("Demolight", "d1")]
    assert body[0] == {
        "id": "b1",
        "name": "Bob Bidder",
        "email": "bob@buybid.com",
        "phone": None,
        "role": "user",
        "status": "suspended",
        "app": "BuybidHQ",
        "created_at": "2024-03-01T00:00:00Z",
        "last_sign_in_at": None,
    }
    assert response.headers["X-Aggregation-Info"] == "configs=4,users=3,skipped=1"


def test_list_users_filters(client):
    response = client.get("/api/v1/users", params={"status": "inactive"})

    assert [u["id"] for u in response.json()] == ["d1"]


def test_list_users_registry_failure_is_500(client, db):
    db.registry_error = "registry offline"

    response = client.get("/api/v1/users")

    assert response.status_code == 500
    assert "registry offline" in response.json()["error"]


def test_users_summary(client):
    response = client.get("/api/v1/users/summary")

    assert response.status_code == 200
    assert response.json() == {
        "total": 3,
        "active": 1,
        "inactive": 1,
        "suspended": 1,
        "by_app": {"BuybidHQ": 1, "Watchtower": 1, "Demolight": 1},
    }


# ============================================================================
# POST /users/update
# ============================================================================

def test_update_user_success(client, rest):
    response = client.post(
        "/api/v1/users/update",
        json={"userId": "b1", "app": "BuybidHQ", "fields": {"firstName": "A", "lastName": "B"}},
    )

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["updated"]["name"] == "A B"
    assert set(body["updated"]) == {"name", "updated_at"}
    assert rest.patches[0]["id"] == "b1"


def test_update_user_status_boolean_app(client, rest):
    response = client.post(
        "/api/v1/users/update",
        json={"userId": "d1", "app": "Demolight", "fields": {"status": "active"}},
    )

    assert response.status_code == 200
    assert set(response.json()["updated"]) == {"is_active", "updated_at"}
    assert response.json()["updated"]["is_active"] is True


def test_update_user_unknown_app_is_404(client):
    response = client.post(
        "/api/v1/users/update",
        json={"userId": "1", "app": "Ghost", "fields": {"email": "g@x.com"}},
    )

    assert response.status_code == 404
    assert response.json() == {"error": 'App "Ghost" not found in registry'}


def test_update_user_nothing_to_update_is_400(client):
    response = client.post(
        "/api/v1/users/update",
        json={"userId": "b1", "app": "BuybidHQ", "fields": {}},
    )

    assert response.status_code == 400
    assert response.json() == {"error": "No valid fields to update"}


BOB = {
    "id": "b1", "name": "Bob Bidder", "email": "bob@buybid.com", "phone": None, "role": "user",
    "status": "suspended", "app": "BuybidHQ", "created_at": "2024-03-01T00:00:00Z", "last_sign_in_at": None,
}


def test_update_user_unchanged_against_original_is_400(client, rest):
    response = client.post(
        "/api/v1/users/update",
        json={
            "userId": "b1",
            "app": "BuybidHQ",
            "fields": {"firstName": "Bob", "lastName": "Bidder", "email": "bob@buybid.com", "status": "suspended"},
            "original": BOB,
        },
    )

    assert response.status_code == 400
    assert response.json() == {"error": "No valid fields to update"}
    assert rest.patches == []


def test_update_user_writes_only_fields_changed_from_original(client, rest):
    response = client.post(
        "/api/v1/users/update",
        json={
            "userId": "b1",
            "app": "BuybidHQ",
            "fields": {"firstName": "Bob", "lastName": "Bidder", "email": "bob@buybid.com", "status": "active"},
            "original": BOB,
        },
    )

    assert response.status_code == 200
    assert set(response.json()["updated"]) == {"status", "updated_at"}
    assert rest.patches[0]["payload"]["status"] == "active"


@pytest.mark.parametrize(
    "body",
    [
        {"app": "BuybidHQ", "fields": {"email": "a@b.c"}},
        {"userId": "b1", "fields": {"email": "a@b.c"}},
        {"userId": "b1", "app": "BuybidHQ"},
        {"userId": "  ", "app": "BuybidHQ", "fields": {"email": "a@b.c"}},
    ],
)
def test_update_user_missing_input_is_400(client, body):
    response = client.post("/api/v1/users/update", json=body)

    assert response.status_code == 400
    assert response.json() == {"error": "Missing userId, app, or fields"}


def test_update_user_remote_failure_is_500(client, rest):
    rest.patch_error = ProjectClientError("BuybidHQ", 422, "bad column", action="Update")

    response = client.post(
        "/api/v1/users/update",
        json={"userId": "b1", "app": "BuybidHQ", "fields": {"role": "admin"}},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "Update failed on BuybidHQ: 422 bad column"}


def test_update_user_missing_key_is_500(client, monkeypatch):
    monkeypatch.delenv("SERVICE_KEY_buybid")
    monkeypatch.setattr(settings, "SERVICE_KEYS", {})

    response = client.post(
        "/api/v1/users/update",
        json={"userId": "b1", "app": "BuybidHQ", "fields": {"role": "admin"}},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "No service key for BuybidHQ"}


# ============================================================================
# POST /activity
# ============================================================================

def test_log_activity(client, db):
    response = client.post(
        "/api/v1/activity",
        json={"app_slug": " buybid ", "event_type": "login", "user_email": "bob@buybid.com", "metadata": "nope"},
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert db.activities == [
        {"app_slug": "buybid", "event_type": "login", "user_email": "bob@buybid.com", "user_id": None, "metadata": {}}
    ]


def test_log_activity_requires_event_type(client, db):
    response = client.post("/api/v1/activity", json={"app_slug": "buybid", "event_type": "   "})

    assert response.status_code == 400
    assert response.json() == {"error": "event_type is required"}
    assert db.activities == []


def test_log_activity_insert_failure_is_500(client, db):
    db.insert_error = "insert rejected"

    response = client.post("/api/v1/activity", json={"app_slug": "buybid", "event_type": "signup"})

    assert response.status_code == 500
    assert response.json() == {"error": "insert rejected"}


def test_health(client):
    assert client.get("/").json()["status"] == "ok"
