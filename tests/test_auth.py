"""
Tests for authentication endpoints.
"""

import bcrypt
import pytest

from shared.config.constants import Permissions
from shared.security.password import hash_password, needs_rehash, verify_password
from tests.conftest import PASSWORD, login


class TestPasswordHashing:
    """Test password hashing utilities."""

    def test_hash_password_returns_bcrypt_hash(self):
        hashed = hash_password("mypassword")
        assert hashed.startswith("$2b$")

    def test_verify_password_correct(self):
        hashed = hash_password("mypassword")
        assert verify_password("mypassword", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("mypassword")
        assert verify_password("wrongpassword", hashed) is False

    def test_plain_text_never_verifies(self):
        """Values that are not bcrypt hashes are rejected outright."""
        assert verify_password("plaintext", "plaintext") is False

    def test_needs_rehash_plain_text(self):
        assert needs_rehash("plaintext") is True

    def test_needs_rehash_current_cost(self):
        assert needs_rehash(hash_password("mypassword")) is False

    def test_needs_rehash_other_cost(self):
        hashed = bcrypt.hashpw(b"mypassword", bcrypt.gensalt(rounds=5)).decode("utf-8")
        assert needs_rehash(hashed) is True


class TestAuthEndpoints:
    """Test authentication API endpoints."""

    def test_login_success(self, client, admin_user):
        response = client.post(
            "/api/auth/login",
            json={"email": "admin@test.com", "password": PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["token_type"] == "Bearer"
        assert data["expires_in"] > 0
        assert data["user"]["email"] == "admin@test.com"
        assert data["user"]["role"] == "admin"
        assert data["user"]["is_admin"] is True

    def test_login_email_is_case_insensitive(self, client, admin_user):
        response = client.post(
            "/api/auth/login",
            json={"email": "ADMIN@test.com", "password": PASSWORD},
        )
        assert response.status_code == 200

    @pytest.mark.parametrize(
        "email,password",
        [
            ("nobody@test.com", PASSWORD),
            ("admin@test.com", "wrongpassword"),
        ],
    )
    def test_login_invalid_credentials(self, client, admin_user, email, password):
        response = client.post("/api/auth/login", json={"email": email, "password": password})
        assert response.status_code == 401

    def test_login_deleted_user(self, client, auth_headers, kitchen_user):
        assert client.delete(f"/api/admin/users/{kitchen_user.id}", headers=auth_headers).status_code == 204

        response = client.post(
            "/api/auth/login",
            json={"email": kitchen_user.email, "password": PASSWORD},
        )
        assert response.status_code == 401

    def test_me_admin_lists_every_permission(self, client, auth_headers):
        response = client.get("/api/auth/me", headers=auth_headers)

        assert response.status_code == 200
        assert sorted(response.json()["permissions"]) == sorted(Permissions.ALL)

    def test_me_kitchen(self, client, kitchen_headers):
        data = client.get("/api/auth/me", headers=kitchen_headers).json()

        assert data["role"] == "cozinha"
        assert data["is_admin"] is False
        assert data["permissions"] == [Permissions.MANAGE_ORDERS]

    def test_me_without_token(self, client, db_session):
        assert client.get("/api/auth/me").status_code == 401

    def test_me_with_garbage_token(self, client, db_session):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_me_after_user_deleted(self, client, auth_headers, kitchen_user):
        headers = login(client, kitchen_user.email)
        client.delete(f"/api/admin/users/{kitchen_user.id}", headers=auth_headers)

        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_logout(self, client, auth_headers):
        response = client.post("/api/auth/logout", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["success"] is True


class TestFirstRunSetup:
    def test_status_before_and_after(self, client, db_session):
        assert client.get("/api/setup/status").json() == {"needs_setup": True}

        response = client.post(
            "/api/setup",
            json={"email": "dono@test.com", "password": "senhaforte1", "nome": "Dono"},
        )

        assert response.status_code == 201
        assert response.json()["user"]["role"] == "admin"
        assert client.get("/api/setup/status").json() == {"needs_setup": False}

    def test_setup_token_works(self, client, db_session):
        token = client.post(
            "/api/setup",
            json={"email": "dono@test.com", "password": "senhaforte1", "nome": "Dono"},
        ).json()["access_token"]

        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.json()["email"] == "dono@test.com"

    def test_second_setup_conflicts(self, client, admin_user):
        response = client.post(
            "/api/setup",
            json={"email": "outro@test.com", "password": "senhaforte1", "nome": "Outro"},
        )
        assert response.status_code == 409

    def test_short_password_rejected(self, client, db_session):
        response = client.post(
            "/api/setup",
            json={"email": "dono@test.com", "password": "curta", "nome": "Dono"},
        )
        assert response.status_code == 422
