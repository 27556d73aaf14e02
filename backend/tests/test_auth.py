from app.core.config import get_settings
from app.core.security import create_access_token


def register_payload(**overrides):
    payload = {
        "company_name": "Northlight Pictures",
        "name": "Dana Admin",
        "email": "Dana@Northlight.example.com",
        "password": "password123",
    }
    payload.update(overrides)
    return payload


def test_register_login_me(client):
    register_response = client.post("/api/auth/register", json=register_payload())
    assert register_response.status_code == 201
    data = register_response.json()
    assert data["email"] == "dana@northlight.example.com"
    assert data["role"] == "admin"
    assert data["is_active"] is True

    login_response = client.post(
        "/api/auth/login",
        json={"email": "dana@northlight.example.com", "password": "password123"},
    )
    assert login_response.status_code == 200
    login_data = login_response.json()
    assert login_data["token_type"] == "bearer"
    assert login_data["user"]["last_login_at"] is not None

    token = login_data["access_token"]
    me_response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me_response.status_code == 200
    me_data = me_response.json()
    assert me_data["company_id"] == data["company_id"]
    assert "manage_scenes" in me_data["capabilities"]
    assert "check_conflicts" in me_data["capabilities"]


def test_register_rejects_duplicate_email_and_company(client):
    assert client.post("/api/auth/register", json=register_payload()).status_code == 201

    duplicate_email = client.post(
        "/api/auth/register",
        json=register_payload(company_name="Harbor Films"),
    )
    assert duplicate_email.status_code == 409

    duplicate_company = client.post(
        "/api/auth/register",
        json=register_payload(email="other@northlight.example.com"),
    )
    assert duplicate_company.status_code == 409


def test_login_rejects_bad_password(client):
    client.post("/api/auth/register", json=register_payload())

    response = client.post(
        "/api/auth/login",
        json={"email": "dana@northlight.example.com", "password": "wrong-password"},
    )
    assert response.status_code == 401


def test_me_requires_valid_token(client):
    assert client.get("/api/auth/me").status_code in {401, 403}

    bogus = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
    assert bogus.status_code == 401

    unknown_user = create_access_token(4242)
    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {unknown_user}"})
    assert response.status_code == 401


def test_login_is_rate_limited(client):
    client.post("/api/auth/register", json=register_payload())
    limit = get_settings().auth_rate_limit_login_max_requests

    for _ in range(limit):
        response = client.post(
            "/api/auth/login",
            json={"email": "dana@northlight.example.com", "password": "wrong-password"},
        )
        assert response.status_code == 401

    blocked = client.post(
        "/api/auth/login",
        json={"email": "dana@northlight.example.com", "password": "password123"},
    )
    assert blocked.status_code == 429
    assert int(blocked.headers["Retry-After"]) >= 1


def test_inactive_user_cannot_login(client):
    client.post("/api/auth/register", json=register_payload())
    admin_token = client.post(
        "/api/auth/login",
        json={"email": "dana@northlight.example.com", "password": "password123"},
    ).json()["access_token"]
    headers = {"Authorization": f"Bearer {admin_token}"}
    member = client.post(
        "/api/team/users",
        json={"name": "Vic Viewer", "email": "vic@northlight.example.com", "role": "viewer", "password": "password123"},
        headers=headers,
    ).json()

    deactivated = client.patch(f"/api/team/users/{member['id']}", json={"is_active": False}, headers=headers)
    assert deactivated.status_code == 200
    assert deactivated.json()["is_active"] is False

    response = client.post(
        "/api/auth/login",
        json={"email": "vic@northlight.example.com", "password": "password123"},
    )
    assert response.status_code == 403


def test_register_race_on_company_name_reports_conflict(client, monkeypatch):
    assert client.post("/api/auth/register", json=register_payload()).status_code == 201
    # Simulate a second request that passed the uniqueness checks before the first one committed.
    monkeypatch.setattr("app.api.routes.auth._ensure_unregistered", lambda db, payload: None)

    response = client.post(
        "/api/auth/register",
        json=register_payload(email="second@northlight.example.com"),
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Email or company name already registered"
