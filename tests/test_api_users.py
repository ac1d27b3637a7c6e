"""API tests for auth, profile, dashboard and budget endpoints."""

from __future__ import annotations

import importlib

import pytest
from fastapi.testclient import TestClient

import backend.api
from tests.fakes import build_in_memory_services


@pytest.fixture
def client(monkeypatch) -> TestClient:
    services = build_in_memory_services()
    monkeypatch.setattr(backend.api, "get_backend_services", lambda: services)
    return TestClient(backend.api.app)


def _register(client: TestClient, email: str = "ada@example.com", password: str = "secret1") -> dict:
    response = client.post("/auth/register", json={"name": "Ada", "email": email, "password": password})
    assert response.status_code == 201, response.text
    return response.json()


def _auth(payload: dict) -> dict[str, str]:
    return {"Authorization": f"Bearer {payload['token']}"}


def test_register_returns_token_and_public_user(client: TestClient) -> None:
    payload = _register(client, email="Ada@Example.com")

    assert payload["token"]
    assert payload["user"]["email"] == "ada@example.com"
    assert "passwordHash" not in payload["user"]
    assert "password_hash" not in payload["user"]
    assert "createdAt" in payload["user"]


def test_register_duplicate_email_is_400(client: TestClient) -> None:
    _register(client)

    response = client.post(
        "/auth/register", json={"name": "Twin", "email": "ADA@example.com", "password": "secret2"}
    )

    assert response.status_code == 400
    assert response.json() == {"detail": "User already exists"}


def test_register_invalid_email_is_400(client: TestClient) -> None:
    response = client.post("/auth/register", json={"name": "Ada", "email": "nope", "password": "secret1"})

    assert response.status_code == 400


def test_login(client: TestClient) -> None:
    registered = _register(client)

    ok = client.post("/auth/login", json={"email": "ada@example.com", "password": "secret1"})
    wrong = client.post("/auth/login", json={"email": "ada@example.com", "password": "bad-password"})
    unknown = client.post("/auth/login", json={"email": "who@example.com", "password": "secret1"})

    assert ok.status_code == 200
    assert ok.json()["user"]["id"] == registered["user"]["id"]
    assert wrong.status_code == unknown.status_code == 401
    assert wrong.json() == unknown.json() == {"detail": "Invalid email or password"}


def test_dashboard(client: TestClient) -> None:
    registered = _register(client)

    response = client.get("/dashboard", headers=_auth(registered))

    assert response.status_code == 200
    assert response.json() == {
        "msg": "Welcome to your dashboard!",
        "user": {"id": registered["user"]["id"], "username": "Ada", "email": "ada@example.com"},
    }


def test_profile_get_and_update(client: TestClient) -> None:
    headers = _auth(_register(client))

    profile = client.get("/user/profile", headers=headers)
    updated = client.put("/user/profile", json={"name": "Ada Lovelace"}, headers=headers)

    assert profile.status_code == 200
    assert profile.json()["name"] == "Ada"
    assert updated.status_code == 200
    assert updated.json()["message"] == "Profile updated successfully"
    assert updated.json()["user"]["name"] == "Ada Lovelace"


def test_profile_password_change_rules(client: TestClient) -> None:
    headers = _auth(_register(client))

    missing = client.put("/user/profile", json={"newPassword": "brandnew"}, headers=headers)
    wrong = client.put(
        "/user/profile", json={"currentPassword": "nope", "newPassword": "brandnew"}, headers=headers
    )
    changed = client.put(
        "/user/profile", json={"currentPassword": "secret1", "newPassword": "brandnew"}, headers=headers
    )

    assert missing.status_code == 400
    assert missing.json() == {"detail": "Current password is required to set new password"}
    assert wrong.status_code == 400
    assert wrong.json() == {"detail": "Current password is incorrect"}
    assert changed.status_code == 200
    assert client.post("/auth/login", json={"email": "ada@example.com", "password": "brandnew"}).status_code == 200


def test_profile_email_taken_is_400(client: TestClient) -> None:
    _register(client, email="taken@example.com")
    headers = _auth(_register(client))

    response = client.put("/user/profile", json={"email": "taken@example.com"}, headers=headers)

    assert response.status_code == 400
    assert response.json() == {"detail": "Email already in use"}


def test_delete_account_cascades_and_revokes_access(client: TestClient) -> None:
    headers = _auth(_register(client))
    client.post(
        "/transactions",
        json={"amount": 10, "type": "Expense", "category": "Food", "description": "Snack"},
        headers=headers,
    )

    missing = client.request("DELETE", "/user/account", headers=headers)
    wrong = client.request("DELETE", "/user/account", json={"password": "nope"}, headers=headers)
    deleted = client.request("DELETE", "/user/account", json={"password": "secret1"}, headers=headers)

    assert missing.status_code == 400
    assert missing.json() == {"detail": "Password is required to delete account"}
    assert wrong.status_code == 400
    assert wrong.json() == {"detail": "Invalid password"}
    assert deleted.status_code == 200
    assert deleted.json() == {"message": "Account deleted successfully"}

    after = client.get("/transactions", headers=headers)
    assert after.status_code == 401
    assert after.json() == {"detail": "User not found"}

    reregistered = _auth(_register(client))
    assert client.get("/transactions", headers=reregistered).json()["pagination"]["total"] == 0


def test_budget_endpoints(client: TestClient) -> None:
    headers = _auth(_register(client))
    other_headers = _auth(_register(client, email="other@example.com"))

    created = client.post("/budgets", json={"category": "Food", "amount": 200}, headers=headers)
    client.post(
        "/transactions",
        json={"amount": 50, "type": "Expense", "category": "Food", "description": "Groceries"},
        headers=headers,
    )
    listed = client.get("/budgets", headers=headers)

    assert created.status_code == 201
    budget = created.json()
    assert budget["period"] == "Monthly"
    assert listed.json()[0]["spent"] == 50
    assert listed.json()[0]["remaining"] == 150
    assert listed.json()[0]["overBudget"] is False
    assert client.get("/budgets", headers=other_headers).json() == []
    assert client.delete(f"/budgets/{budget['id']}", headers=other_headers).status_code == 404
    assert client.delete(f"/budgets/{budget['id']}", headers=headers).status_code == 200
    assert client.get("/budgets", headers=headers).json() == []


def test_budget_rejects_income_category(client: TestClient) -> None:
    headers = _auth(_register(client))

    response = client.post("/budgets", json={"category": "Salary", "amount": 100}, headers=headers)

    assert response.status_code == 400


def test_cors_headers_for_ui_origin(monkeypatch) -> None:
    ui_origin = "https://finance-tracker-ui.example.com"
    monkeypatch.setenv("APP_ENV", "prod")
    monkeypatch.delenv("CORS_ALLOW_ORIGINS", raising=False)
    monkeypatch.setenv("UI_ORIGIN", ui_origin)

    api = importlib.reload(backend.api)
    client = TestClient(api.app)

    response = client.options(
        "/transactions",
        headers={
            "Origin": ui_origin,
            "Access-Control-Request-Method": "GET",
            "Access-Control-Request-Headers": "authorization",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == ui_origin
