"""
Tests for registration, login, token refresh and self-service endpoints.
"""
import pytest

from authserver.models.user import User
from authserver.repositories.organization_repo import NormalUserQuotaRepository
from authserver.repositories.user_repo import UserRepository

from conftest import PASSWORD


def register_payload(email, role="DefaultUser", **extra):
    return {
        "email": email,
        "password": PASSWORD,
        "first_name": "Test",
        "last_name": "User",
        "role": role,
        **extra,
    }


class TestRegister:

    @pytest.mark.asyncio
    async def test_default_user_is_active_with_quota(self, client, session):
        response = await client.post("/api/auth/register", json=register_payload("bob@corp.com"))

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Active"

        user = await UserRepository(session).get_by_email("bob@corp.com")
        quota = await NormalUserQuotaRepository(session).get_by_user(user.id)
        assert quota.cv_uploads_used == 0
        assert quota.cv_uploads_limit == 2

    @pytest.mark.asyncio
    async def test_org_admin_is_pending_and_super_admins_notified(
        self, client, session, super_admin, email_service
    ):
        response = await client.post(
            "/api/auth/register",
            json=register_payload("alice@x.com", role="OrganizationAdmin", requested_org_name="Acme")
        )

        assert response.status_code == 200
        assert response.json()["status"] == "Pending"
        user = await UserRepository(session).get_by_email("alice@x.com")
        assert user.requested_org_name == "Acme"
        assert await NormalUserQuotaRepository(session).get_by_user(user.id) is None
        assert [mail["to"] for mail in email_service.sent_emails] == ["root@corp.com"]

    @pytest.mark.asyncio
    async def test_org_admin_requires_org_name(self, client):
        response = await client.post(
            "/api/auth/register", json=register_payload("alice@x.com", role="OrganizationAdmin")
        )
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "requested_org_name"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role", ["SuperAdmin", "OrganizationUser", "Hacker"])
    async def test_privileged_roles_cannot_self_register(self, client, role):
        response = await client.post("/api/auth/register", json=register_payload("eve@corp.com", role=role))
        assert response.status_code == 400
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_weak_password(self, client):
        payload = register_payload("bob@corp.com")
        payload["password"] = "weak"
        response = await client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        assert all(detail["field"] == "password" for detail in response.json()["details"])

    @pytest.mark.asyncio
    async def test_malformed_email(self, client):
        response = await client.post("/api/auth/register", json=register_payload("not-an-email"))
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "email"

    @pytest.mark.asyncio
    async def test_duplicate_email(self, client, make_user):
        await make_user("bob@corp.com")
        response = await client.post("/api/auth/register", json=register_payload("Bob@corp.com"))
        assert response.status_code == 400


class TestLogin:

    @pytest.mark.asyncio
    async def test_success(self, client, make_user):
        await make_user("bob@corp.com", first_name="Bob")
        response = await client.post("/api/auth/login", json={"email": "bob@corp.com", "password": PASSWORD})

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["refresh_token"]
        assert data["token_type"] == "bearer"
        assert data["expires_in"] == 3600
        assert data["must_change_password"] is False
        assert data["user"]["email"] == "bob@corp.com"
        assert data["user"]["role"] == "DefaultUser"

    @pytest.mark.asyncio
    async def test_bad_credentials(self, client, make_user):
        await make_user("bob@corp.com")
        wrong = await client.post("/api/auth/login", json={"email": "bob@corp.com", "password": "Wrong1234"})
        unknown = await client.post("/api/auth/login", json={"email": "ghost@corp.com", "password": PASSWORD})

        assert wrong.status_code == 401
        assert unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"error": "Invalid credentials"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["Pending", "Inactive"])
    async def test_inactive_account(self, client, make_user, status):
        await make_user("bob@corp.com", status=status)
        response = await client.post("/api/auth/login", json={"email": "bob@corp.com", "password": PASSWORD})

        assert response.status_code == 401
        data = response.json()
        assert data["error"] == "Account not active"
        assert data["status"] == status
        assert data["message"]

    @pytest.mark.asyncio
    async def test_status_hidden_without_password(self, client, make_user):
        await make_user("bob@corp.com", status="Pending")
        response = await client.post("/api/auth/login", json={"email": "bob@corp.com", "password": "Wrong1234"})
        assert response.json() == {"error": "Invalid credentials"}

    @pytest.mark.asyncio
    async def test_deactivated_organization(self, client, make_org):
        await make_org("Acme", is_active=False)
        response = await client.post("/api/auth/login", json={"email": "owner@acme.com", "password": PASSWORD})

        assert response.status_code == 401
        assert response.json()["status"] == "OrganizationInactive"


class TestRefresh:

    @pytest.mark.asyncio
    async def test_rotation(self, client, make_user, login):
        await make_user("bob@corp.com")
        tokens = await login("bob@corp.com")

        first = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert first.status_code == 200
        rotated = first.json()
        assert rotated["refresh_token"] != tokens["refresh_token"]

        reused = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        unknown = await client.post("/api/auth/refresh", json={"refresh_token": "bogus"})
        assert reused.status_code == unknown.status_code == 401
        assert reused.json() == unknown.json()

        second = await client.post("/api/auth/refresh", json={"refresh_token": rotated["refresh_token"]})
        assert second.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.post("/api/auth/refresh", json={})
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_refresh_blocked_for_deactivated_user(self, client, session_maker, make_user, login):
        user = await make_user("bob@corp.com")
        tokens = await login("bob@corp.com")

        async with session_maker() as session:
            db_user = await session.get(User, user.id)
            db_user.status = "Inactive"
            session.add(db_user)
            await session.commit()

        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_refresh_blocked_for_deactivated_organization(
        self, client, make_org, login, admin_headers
    ):
        org, owner = await make_org("Acme")
        tokens = await login(owner.email)

        await client.post(f"/api/admin/organizations/{org.id}/deactivate", json={"reason": "Unpaid"}, headers=admin_headers)

        response = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 401


class TestLogout:

    @pytest.mark.asyncio
    async def test_logout_revokes(self, client, make_user, login):
        await make_user("bob@corp.com")
        tokens = await login("bob@corp.com")

        response = await client.post("/api/auth/logout", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200

        refresh = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refresh.status_code == 401

    @pytest.mark.asyncio
    async def test_logout_always_succeeds(self, client):
        assert (await client.post("/api/auth/logout", json={})).status_code == 200
        assert (await client.post("/api/auth/logout", json={"refresh_token": "bogus"})).status_code == 200


class TestSelfService:

    @pytest.mark.asyncio
    async def test_me_requires_token(self, client):
        response = await client.get("/api/me")
        assert response.status_code == 401
        assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_me_rejects_garbage_token(self, client):
        response = await client.get("/api/me", headers={"Authorization": "Bearer nonsense"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_me(self, client, make_user, headers_for):
        await make_user("bob@corp.com")
        response = await client.get("/api/me", headers=await headers_for("bob@corp.com"))

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "bob@corp.com"
        assert response.json()["roles"] == ["DefaultUser"]

    @pytest.mark.asyncio
    async def test_account_info(self, client, make_user, headers_for):
        await make_user("bob@corp.com", first_name="Bob", last_name="Stone")
        response = await client.get("/api/account/info", headers=await headers_for("bob@corp.com"))
        assert response.json() == {
            "email": "bob@corp.com", "first_name": "Bob", "last_name": "Stone", "status": "Active"
        }

    @pytest.mark.asyncio
    async def test_change_password(self, client, make_user, headers_for, login):
        await make_user("bob@corp.com", must_change_password=True)
        headers = await headers_for("bob@corp.com")

        response = await client.post("/api/auth/change-password", headers=headers, json={
            "current_password": PASSWORD,
            "new_password": "NewPassw0rd",
            "confirm_password": "NewPassw0rd",
        })
        assert response.status_code == 200

        tokens = await login("bob@corp.com", "NewPassw0rd")
        assert tokens["must_change_password"] is False

    @pytest.mark.asyncio
    async def test_change_password_wrong_current(self, client, make_user, headers_for):
        await make_user("bob@corp.com")
        response = await client.post("/api/auth/change-password", headers=await headers_for("bob@corp.com"), json={
            "current_password": "Wrong1234",
            "new_password": "NewPassw0rd",
            "confirm_password": "NewPassw0rd",
        })
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_change_password_mismatch(self, client, make_user, headers_for):
        await make_user("bob@corp.com")
        response = await client.post("/api/auth/change-password", headers=await headers_for("bob@corp.com"), json={
            "current_password": PASSWORD,
            "new_password": "NewPassw0rd",
            "confirm_password": "Different1",
        })
        assert response.status_code == 400
        assert response.json()["details"][0]["field"] == "confirm_password"

    @pytest.mark.asyncio
    async def test_update_profile(self, client, make_user, headers_for):
        await make_user("bob@corp.com", first_name="Bob")
        response = await client.put(
            "/api/auth/update-profile",
            headers=await headers_for("bob@corp.com"),
            json={"last_name": "Builder"}
        )
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["first_name"] == "Bob"
        assert user["last_name"] == "Builder"


@pytest.mark.asyncio
async def test_health(client):
    assert (await client.get("/health")).json()["status"] == "healthy"
    assert (await client.get("/health")).json()["version"] == "1.0.0"


@pytest.mark.asyncio
async def test_error_envelope_is_documented(client):
    schema = (await client.get("/openapi.json")).json()
    assert "ErrorResponse" in schema["components"]["schemas"]
    me_responses = schema["paths"]["/api/me"]["get"]["responses"]
    assert me_responses["401"]["content"]["application/json"]["schema"]["$ref"].endswith("/ErrorResponse")
