"""
HTTP tests for the administrator-only user management routes.

Administrators are made by promoting a registered user directly in the
in-memory collection.
"""

from fastapi.testclient import TestClient
import pytest

from biokey_auth.main import app
from biokey_auth.routes.auth.dependencies import get_auth_service

ADMIN_EMAIL = "admin@example.com"
USER_EMAIL = "a@example.com"
PASSWORD = "password1"
MISSING_ID = "65a1f0c2e4b0a1b2c3d4e5f6"


@pytest.fixture
def client(auth_service):
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    yield TestClient(app)
    app.dependency_overrides.clear()


def _register(client, email):
    return client.post("/auth/register", json={"email": email, "password": PASSWORD}).json()


def _auth(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(client, users_collection):
    data = _register(client, ADMIN_EMAIL)
    for doc in users_collection.docs:
        if doc["email"] == ADMIN_EMAIL:
            doc["role"] = "ADMIN"
    return _auth(data["access_token"])


@pytest.fixture
def user(client):
    return _register(client, USER_EMAIL)


class TestAccessControl:
    def test_without_token(self, client):
        assert client.get("/users").status_code == 401

    def test_non_admin_is_forbidden(self, client, user):
        response = client.get("/users", headers=_auth(user["access_token"]))

        assert response.status_code == 403
        assert response.json() == {"error": "forbidden", "message": "Admin access required"}

    def test_non_admin_cannot_promote_themselves(self, client, user):
        response = client.patch(
            f"/users/{user['user']['id']}", json={"role": "ADMIN"}, headers=_auth(user["access_token"])
        )

        assert response.status_code == 403
        me = client.get("/auth/me", headers=_auth(user["access_token"])).json()
        assert me["role"] == "USER"


class TestUserManagement:
    def test_create_user(self, client, admin_headers):
        response = client.post(
            "/users", json={"email": "b@example.com", "password": PASSWORD, "role": "ADMIN"}, headers=admin_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "b@example.com"
        assert data["role"] == "ADMIN"
        assert "password_hash" not in data

        login = client.post("/auth/login", json={"email": "b@example.com", "password": PASSWORD})
        assert login.status_code == 200

    def test_create_duplicate(self, client, admin_headers, user):
        response = client.post("/users", json={"email": USER_EMAIL, "password": PASSWORD}, headers=admin_headers)

        assert response.status_code == 409

    def test_list_users(self, client, admin_headers, user):
        response = client.get("/users", headers=admin_headers)

        assert response.status_code == 200
        assert [item["email"] for item in response.json()] == [ADMIN_EMAIL, USER_EMAIL]

    def test_get_user(self, client, admin_headers, user):
        response = client.get(f"/users/{user['user']['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["email"] == USER_EMAIL

    def test_get_unknown_user(self, client, admin_headers):
        response = client.get(f"/users/{MISSING_ID}", headers=admin_headers)

        assert response.status_code == 404
        assert response.json() == {"error": "not_found", "message": "User not found"}

    def test_update_user(self, client, admin_headers, user):
        response = client.patch(
            f"/users/{user['user']['id']}",
            json={"email": "renamed@example.com", "password": "password2"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["email"] == "renamed@example.com"
        login = client.post("/auth/login", json={"email": "renamed@example.com", "password": "password2"})
        assert login.status_code == 200

    def test_update_requires_a_field(self, client, admin_headers, user):
        response = client.patch(f"/users/{user['user']['id']}", json={}, headers=admin_headers)

        assert response.status_code == 422

    def test_update_weak_password(self, client, admin_headers, user):
        response = client.patch(f"/users/{user['user']['id']}", json={"password": "short"}, headers=admin_headers)

        assert response.status_code == 400

    def test_remove_user(self, client, admin_headers, user):
        response = client.delete(f"/users/{user['user']['id']}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["email"] == USER_EMAIL
        assert client.get(f"/users/{user['user']['id']}", headers=admin_headers).status_code == 404
        # The removed user's token no longer resolves
        assert client.get("/auth/me", headers=_auth(user["access_token"])).status_code == 401

    def test_remove_unknown_user(self, client, admin_headers):
        assert client.delete(f"/users/{MISSING_ID}", headers=admin_headers).status_code == 404
