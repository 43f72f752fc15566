"""
Test: Auth and user management — mock login, account status and approvals.
"""
import pytest
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.security import get_password_hash
from app.main import create_app


@pytest.fixture
def mock_auth_client(services, monkeypatch):
    """Client that goes through real bearer-token auth in mock mode."""
    monkeypatch.setattr(settings, "AUTH_MODE", "mock")
    with TestClient(create_app(services)) as test_client:
        yield test_client


class TestLogin:
    def test_login_and_me(self, mock_auth_client, store):
        store.update("profiles", "teacher-1", {"password_hash": get_password_hash("secret")})

        response = mock_auth_client.post("/api/auth/login", json={"email": "teacher@kenova.edu", "password": "secret"})
        assert response.status_code == 200
        token = response.json()["data"]["token"]
        assert token == "mock-teacher@kenova.edu"

        me = mock_auth_client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.json()["data"]["role"] == "teacher"

    def test_wrong_password(self, mock_auth_client, store):
        store.update("profiles", "teacher-1", {"password_hash": get_password_hash("secret")})
        response = mock_auth_client.post("/api/auth/login", json={"email": "teacher@kenova.edu", "password": "nope"})
        assert response.status_code == 401

    def test_pending_account_rejected(self, mock_auth_client, store):
        store.update("profiles", "pending-1", {"password_hash": get_password_hash("secret")})
        response = mock_auth_client.post("/api/auth/login", json={"email": "new@kenova.edu", "password": "secret"})
        assert response.status_code == 403

    def test_invalid_token(self, mock_auth_client):
        response = mock_auth_client.get("/api/auth/me", headers={"Authorization": "Bearer mock-nobody@kenova.edu"})
        assert response.status_code == 401


class TestUsers:
    def test_list_filtered_by_role(self, client, login):
        login("teacher-1")
        data = client.get("/api/users", params={"role": "student"}).json()["data"]
        assert sorted(u["id"] for u in data) == ["pending-1", "student-1", "student-2", "student-3"]
        assert "password_hash" not in data[0]

    def test_students_cannot_list(self, client, login):
        login("student-1")
        assert client.get("/api/users").status_code == 403

    def test_approval_sends_welcome(self, client, login, notifier):
        login("admin-1")
        response = client.patch("/api/users/pending-1", json={"status": "active"})
        assert response.json()["message"] == "User approved"
        assert notifier.sent[0]["to"] == "new@kenova.edu"

    def test_approval_stands_when_email_fails(self, client, login, notifier, store):
        notifier.fail = True
        login("admin-1")
        response = client.patch("/api/users/pending-1", json={"status": "active"})
        assert response.status_code == 200
        assert "could not be sent" in response.json()["message"]
        assert store.get("profiles", "pending-1")["status"] == "active"

    def test_role_change_sends_nothing(self, client, login, notifier):
        login("admin-1")
        response = client.patch("/api/users/student-2", json={"role": "tutor"})
        assert response.json()["data"]["role"] == "tutor"
        assert notifier.sent == []
