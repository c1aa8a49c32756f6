from __future__ import annotations

from datetime import timedelta

from fastapi.testclient import TestClient
from sqlalchemy import select

import shiftdesk.db as app_db
from shiftdesk.main import app
from shiftdesk.models import Organization, SessionRecord, User

BOOTSTRAP_TOKEN = "test-bootstrap-token"


def bootstrap_manager(
    client: TestClient,
    email: str = "manager@example.com",
    password: str = "manager-password-123",
    organization_name: str = "Harbour Cafe",
):
    return client.post(
        "/auth/bootstrap",
        headers={"X-Bootstrap-Token": BOOTSTRAP_TOKEN},
        json={"organizationName": organization_name, "name": "Morgan", "email": email, "password": password},
    )


def login(client: TestClient, email: str, password: str):
    return client.post("/auth/login", json={"email": email, "password": password})


def test_health_and_index():
    client = TestClient(app)
    assert client.get("/health").json()["ok"] is True
    assert client.get("/").status_code == 200


def test_bootstrap_requires_token_and_creates_organization():
    client = TestClient(app)

    missing = client.post(
        "/auth/bootstrap",
        json={"organizationName": "Harbour Cafe", "name": "Morgan", "email": "owner@example.com", "password": "strong-password-123"},
    )
    assert missing.status_code == 403

    first = bootstrap_manager(client, "owner@example.com", "strong-password-123")
    assert first.status_code == 201
    body = first.json()
    assert body["role"] == "manager"
    assert body["organizationId"] > 0

    db = app_db.SessionLocal()
    user = db.scalar(select(User).where(User.email == "owner@example.com"))
    assert user is not None
    assert user.password_hash.startswith("$2")
    assert db.get(Organization, user.organization_id).name == "Harbour Cafe"
    db.close()

    duplicate = bootstrap_manager(TestClient(app), "owner@example.com", "strong-password-123")
    assert duplicate.status_code == 409


def test_bootstrap_unavailable_without_configured_token(monkeypatch):
    monkeypatch.delenv("BOOTSTRAP_TOKEN", raising=False)
    client = TestClient(app)

    assert bootstrap_manager(client).status_code == 503


def test_bootstrap_rejects_weak_password():
    client = TestClient(app)

    assert bootstrap_manager(client, password="short").status_code == 400


def test_login_logout_and_me_flow():
    client = TestClient(app)
    bootstrap_manager(client)
    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401

    bad = login(client, "manager@example.com", "wrong-password-123")
    assert bad.status_code == 401

    login_res = login(client, "manager@example.com", "manager-password-123")
    assert login_res.status_code == 200
    cookie = login_res.headers.get("set-cookie", "")
    assert "session_id=" in cookie
    assert "HttpOnly" in cookie
    assert "SameSite=lax" in cookie
    assert "Secure" not in cookie

    me = client.get("/auth/me")
    assert me.status_code == 200
    assert me.json()["email"] == "manager@example.com"

    client.post("/auth/logout")
    assert client.get("/auth/me").status_code == 401


def test_cookie_is_secure_when_forwarded_proto_is_https():
    client = TestClient(app)
    bootstrap_manager(client)
    client.post("/auth/logout")

    login_res = client.post(
        "/auth/login",
        headers={"x-forwarded-proto": "https"},
        json={"email": "manager@example.com", "password": "manager-password-123"},
    )
    assert login_res.status_code == 200
    assert "Secure" in login_res.headers.get("set-cookie", "")


def test_auth_and_api_responses_disable_cache():
    client = TestClient(app)
    bootstrap_manager(client)

    for path in ("/auth/me", "/api/locations", "/api/dashboard/stats"):
        res = client.get(path)
        assert res.status_code == 200
        assert "no-store" in res.headers.get("cache-control", "")
        assert "no-cache" in res.headers.get("pragma", "")


def test_expired_sessions_are_rejected():
    client = TestClient(app)
    bootstrap_manager(client)

    session_id = client.cookies.get("session_id")
    assert session_id

    db = app_db.SessionLocal()
    row = db.get(SessionRecord, session_id)
    row.expires_at = row.created_at - timedelta(seconds=1)
    db.add(row)
    db.commit()
    db.close()

    assert client.get("/auth/me").status_code == 401


def test_employee_without_password_cannot_log_in():
    client = TestClient(app)
    bootstrap_manager(client)
    location = client.post("/api/locations", json={"name": "Harbour"}).json()
    created = client.post(
        "/api/employees",
        json={"name": "Ellis", "email": "ellis@example.com", "locationId": location["id"]},
    )
    assert created.status_code == 201

    assert login(TestClient(app), "ellis@example.com", "anything-at-all").status_code == 401


def test_employee_cannot_use_manager_endpoints():
    client = TestClient(app)
    bootstrap_manager(client)
    location = client.post("/api/locations", json={"name": "Harbour"}).json()
    client.post(
        "/api/employees",
        json={
            "name": "Ellis",
            "email": "ellis@example.com",
            "locationId": location["id"],
            "temporaryPassword": "ellis-password-123",
        },
    )

    staff = TestClient(app)
    assert login(staff, "ellis@example.com", "ellis-password-123").status_code == 200
    assert staff.post("/api/locations", json={"name": "Elsewhere"}).status_code == 403
    assert staff.get("/api/locations").status_code == 200
