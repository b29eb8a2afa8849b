"""
Tests for the user routes: /api/users/me and the admin user endpoints.
"""
import pytest
from sqlalchemy import func, select

from app.core import config
from app.features.permissions.service import create_permission, grant_permission_to_user
from app.features.users.models import User
from app.features.users.roles import Role
from tests.fixtures.user_fixtures import auth_headers


NEW_USER = {
    "name": "Jane Doe",
    "email": "jane@example.com",
    "password": "secret123",
    "role": "doctor",
}


async def count_users(db) -> int:
    return (await db.execute(select(func.count()).select_from(User))).scalar_one()


class TestCurrentUser:
    @pytest.mark.asyncio
    async def test_returns_profile(self, client, doctor_user):
        response = await client.get("/api/users/me", headers=auth_headers(doctor_user))

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == "doctor@example.com"
        assert body["role"] == "doctor"
        assert "password" not in body
        assert "otp" not in body

    @pytest.mark.asyncio
    async def test_requires_token(self, client):
        response = await client.get("/api/users/me")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rejects_invalid_token(self, client):
        response = await client.get("/api/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestAddUserRoute:
    """Test POST /api/admin/users."""

    @pytest.mark.asyncio
    async def test_admin_adds_user_and_code_is_sent(self, client, db, admin_user, code_sender):
        response = await client.post("/api/admin/users", json=NEW_USER, headers=auth_headers(admin_user))

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User added successfully. OTP sent to the user's email."
        assert body["user"]["email"] == "jane@example.com"
        assert body["user"]["role"] == "doctor"
        assert body["user"]["hospital_id"].startswith("H")
        assert "password" not in body["user"]

        stored = (await db.execute(select(User).where(User.email == "jane@example.com"))).scalar_one()
        assert stored.otp is not None
        assert stored.otp_expires_at is not None
        assert code_sender.sent == [("jane@example.com", stored.otp)]

    @pytest.mark.asyncio
    async def test_anonymous_is_unauthorized(self, client, db):
        response = await client.post("/api/admin/users", json=NEW_USER)

        assert response.status_code == 403
        assert response.json()["category"] == "unauthorized"
        assert await count_users(db) == 0

    @pytest.mark.asyncio
    async def test_non_admin_is_unauthorized(self, client, doctor_user):
        response = await client.post("/api/admin/users", json=NEW_USER, headers=auth_headers(doctor_user))

        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized. Only admins can add users."

    @pytest.mark.asyncio
    async def test_direct_permission_grant_does_not_satisfy_admin_gate(self, client, db, doctor_user):
        """A doctor holding manage_permissions directly is still not an admin."""
        permission = await create_permission(db, config.MANAGE_PERMISSIONS)
        await grant_permission_to_user(db, permission.id, doctor_user.id)

        response = await client.post("/api/admin/users", json=NEW_USER, headers=auth_headers(doctor_user))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unauthorized_wins_over_invalid_body(self, client, doctor_user):
        response = await client.post(
            "/api/admin/users", json={"email": "not-an-email"}, headers=auth_headers(doctor_user)
        )
        assert response.status_code == 403

    @pytest.mark.asyncio
    @pytest.mark.parametrize("password", ["é" * 40, "a" * 80])
    async def test_long_passwords_accepted(self, client, admin_user, password):
        """Passwords only have a minimum length; bcrypt input is capped at 72 bytes."""
        response = await client.post(
            "/api/admin/users", json={**NEW_USER, "password": password}, headers=auth_headers(admin_user)
        )

        assert response.status_code == 201

    @pytest.mark.asyncio
    async def test_malformed_json_from_anonymous_is_unauthorized(self, client, db):
        response = await client.post(
            "/api/admin/users", content=b"{not json", headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 403
        assert response.json()["category"] == "unauthorized"
        assert await count_users(db) == 0

    @pytest.mark.asyncio
    async def test_malformed_json_from_non_admin_is_unauthorized(self, client, doctor_user):
        headers = {**auth_headers(doctor_user), "Content-Type": "application/json"}

        response = await client.post("/api/admin/users", content=b"{not json", headers=headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_malformed_json_from_admin_is_invalid(self, client, db, admin_user, code_sender):
        headers = {**auth_headers(admin_user), "Content-Type": "application/json"}

        response = await client.post("/api/admin/users", content=b"{not json", headers=headers)

        assert response.status_code == 400
        body = response.json()
        assert body["category"] == "validation_error"
        assert "JSON decode error" in body["errors"].values()
        assert await count_users(db) == 1
        assert code_sender.sent == []

    @pytest.mark.asyncio
    async def test_admin_role_rejected(self, client, db, admin_user):
        response = await client.post(
            "/api/admin/users", json={**NEW_USER, "role": "admin"}, headers=auth_headers(admin_user)
        )

        assert response.status_code == 400
        assert response.json()["category"] == "validation_error"
        assert await count_users(db) == 1

    @pytest.mark.asyncio
    async def test_invalid_body(self, client, admin_user, code_sender):
        response = await client.post(
            "/api/admin/users",
            json={"name": "", "email": "not-an-email", "password": "123", "role": "doctor"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 400
        body = response.json()
        assert body["category"] == "validation_error"
        assert {"name", "email", "password"} <= set(body["errors"])
        assert code_sender.sent == []

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, db, admin_user, doctor_user, code_sender):
        response = await client.post(
            "/api/admin/users",
            json={**NEW_USER, "email": "doctor@example.com"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 400
        assert response.json()["error"] == "The email has already been taken."
        assert await count_users(db) == 2
        assert code_sender.sent == []


class TestListUsersRoute:
    """Test GET /api/admin/users/{role}."""

    @pytest.mark.asyncio
    async def test_lists_users(self, client, admin_user, make_user):
        nurse = await make_user(Role.NURSE, email="nurse@example.com")

        response = await client.get("/api/admin/users/nurse", headers=auth_headers(admin_user))

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Users with role 'nurse' retrieved successfully."
        assert [u["id"] for u in body["users"]] == [nurse.id]

    @pytest.mark.asyncio
    async def test_empty_role_is_not_found(self, client, admin_user):
        response = await client.get("/api/admin/users/accountant", headers=auth_headers(admin_user))

        assert response.status_code == 404
        assert response.json() == {"error": "No users found for this role.", "category": "not_found"}

    @pytest.mark.asyncio
    async def test_admin_role_is_invalid(self, client, admin_user):
        response = await client.get("/api/admin/users/admin", headers=auth_headers(admin_user))

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid role specified."

    @pytest.mark.asyncio
    async def test_non_admin_is_unauthorized(self, client, doctor_user):
        response = await client.get("/api/admin/users/doctor", headers=auth_headers(doctor_user))
        assert response.status_code == 403


class TestDeleteUserRoute:
    """Test DELETE /api/admin/users/{user_id}."""

    @pytest.mark.asyncio
    async def test_deletes_user(self, client, db, admin_user, doctor_user):
        response = await client.delete(f"/api/admin/users/{doctor_user.id}", headers=auth_headers(admin_user))

        assert response.status_code == 200
        assert response.json()["message"] == "User deleted successfully."
        assert await count_users(db) == 1

    @pytest.mark.asyncio
    async def test_missing_user(self, client, admin_user):
        response = await client.delete("/api/admin/users/9999", headers=auth_headers(admin_user))

        assert response.status_code == 404
        assert response.json()["error"] == "User not found."

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, client, db, admin_user):
        response = await client.delete(f"/api/admin/users/{admin_user.id}", headers=auth_headers(admin_user))

        assert response.status_code == 403
        assert response.json() == {"error": "You cannot delete yourself.", "category": "unauthorized"}
        assert await count_users(db) == 1

    @pytest.mark.asyncio
    async def test_non_admin_is_unauthorized(self, client, db, doctor_user, make_user):
        nurse = await make_user(Role.NURSE)

        response = await client.delete(f"/api/admin/users/{nurse.id}", headers=auth_headers(doctor_user))

        assert response.status_code == 403
        assert await count_users(db) == 2
