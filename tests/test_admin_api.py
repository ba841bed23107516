"""
Tests for SuperAdmin endpoints: approvals, user status and dashboard.
"""
import pytest
from sqlmodel import select

from authserver.models.organization import Organization, SubscriptionPlan
from authserver.models.user import User
from authserver.repositories.user_repo import UserRepository
from authserver.services.email_service import EmailService, set_email_service

from conftest import PASSWORD


class FailingEmailService(EmailService):
    """Email transport that always fails."""

    def __init__(self):
        self.attempts = 0

    async def send_email(self, to, subject, body):
        self.attempts += 1
        raise ConnectionError("SMTP server unreachable")


async def register_org_admin(client, email="alice@x.com", org_name="Acme"):
    response = await client.post("/api/auth/register", json={
        "email": email,
        "password": PASSWORD,
        "first_name": "Alice",
        "last_name": "Smith",
        "role": "OrganizationAdmin",
        "requested_org_name": org_name,
    })
    assert response.status_code == 200
    return response.json()["user_id"]


class TestOrgAdminApproval:

    @pytest.mark.asyncio
    async def test_end_to_end_approval(self, client, session, admin_headers, email_service):
        user_id = await register_org_admin(client)

        blocked = await client.post("/api/auth/login", json={"email": "alice@x.com", "password": PASSWORD})
        assert blocked.status_code == 401
        assert blocked.json()["error"] == "Account not active"

        pending = await client.get("/api/admin/pending-org-admins", headers=admin_headers)
        assert [user["email"] for user in pending.json()] == ["alice@x.com"]

        response = await client.post(
            "/api/admin/approve-org-admin",
            json={"user_id": user_id, "organization_name": "Acme"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["slug"] == "acme"

        orgs = (await session.exec(select(Organization))).all()
        assert len(orgs) == 1
        org = orgs[0]
        starter = (await session.exec(select(SubscriptionPlan).where(SubscriptionPlan.name == "starter"))).one()
        assert org.name == "Acme"
        assert org.subscription_plan_id == starter.id
        assert org.cv_uploads_this_month == 0

        alice = await UserRepository(session).get_by_email("alice@x.com")
        assert alice.status == "Active"
        assert alice.organization_id == org.id
        assert org.owner_id == alice.id

        login = await client.post("/api/auth/login", json={"email": "alice@x.com", "password": PASSWORD})
        assert login.status_code == 200
        assert login.json()["user"]["role"] == "OrganizationAdmin"
        assert email_service.get_last_email()["to"] == "alice@x.com"

    @pytest.mark.asyncio
    async def test_approval_uses_requested_name_by_default(self, client, admin_headers):
        user_id = await register_org_admin(client, org_name="Blue Sky Ltd.")
        response = await client.post(
            "/api/admin/approve-org-admin", json={"user_id": user_id}, headers=admin_headers
        )
        assert response.json()["organization_name"] == "Blue Sky Ltd."
        assert response.json()["slug"] == "blue-sky-ltd"

    @pytest.mark.asyncio
    async def test_approval_fails_without_starter_plan(self, client, session, admin_headers):
        user_id = await register_org_admin(client)
        starter = (await session.exec(select(SubscriptionPlan).where(SubscriptionPlan.name == "starter"))).one()
        starter.name = "legacy-starter"
        session.add(starter)
        await session.commit()

        response = await client.post(
            "/api/admin/approve-org-admin", json={"user_id": user_id}, headers=admin_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "No subscription plan available"
        assert (await session.exec(select(Organization))).all() == []

    @pytest.mark.asyncio
    async def test_duplicate_slug_rejected(self, client, admin_headers, make_org):
        await make_org("Acme")
        user_id = await register_org_admin(client)
        response = await client.post(
            "/api/admin/approve-org-admin", json={"user_id": user_id}, headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_approve_requires_pending_user(self, client, admin_headers, make_user):
        user = await make_user("bob@corp.com")
        response = await client.post(
            "/api/admin/approve-org-admin",
            json={"user_id": str(user.id), "organization_name": "Bobco"},
            headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_approve_unknown_user(self, client, admin_headers):
        response = await client.post(
            "/api/admin/approve-org-admin",
            json={"user_id": "00000000-0000-0000-0000-000000000000", "organization_name": "X"},
            headers=admin_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_reject(self, client, session, admin_headers):
        user_id = await register_org_admin(client)
        response = await client.post(
            "/api/admin/reject-org-admin",
            json={"user_id": user_id, "reason": "Incomplete details"},
            headers=admin_headers
        )
        assert response.status_code == 200

        alice = await UserRepository(session).get_by_email("alice@x.com")
        assert alice.status == "Inactive"
        assert alice.deactivation_reason == "Incomplete details"
        assert (await session.exec(select(Organization))).all() == []

    @pytest.mark.asyncio
    async def test_notification_failure_does_not_roll_back(self, client, session, admin_headers):
        user_id = await register_org_admin(client)
        failing = FailingEmailService()
        set_email_service(failing)

        response = await client.post(
            "/api/admin/approve-org-admin", json={"user_id": user_id}, headers=admin_headers
        )

        assert response.status_code == 200
        assert failing.attempts == 1
        alice = await UserRepository(session).get_by_email("alice@x.com")
        assert alice.status == "Active"


class TestAccessControl:

    @pytest.mark.asyncio
    async def test_non_admin_forbidden(self, client, make_user, headers_for):
        await make_user("bob@corp.com")
        headers = await headers_for("bob@corp.com")

        for path in ("/api/admin/users", "/api/admin/dashboard-stats", "/api/admin/organizations"):
            response = await client.get(path, headers=headers)
            assert response.status_code == 403
            assert "error" in response.json()

    @pytest.mark.asyncio
    async def test_anonymous_unauthorized(self, client):
        assert (await client.get("/api/admin/users")).status_code == 401


class TestUserStatus:

    @pytest.mark.asyncio
    async def test_change_status_valid(self, client, make_user, admin_headers):
        await make_user("bob@corp.com", status="Pending")
        response = await client.post(
            "/api/account/change-status",
            json={"email": "bob@corp.com", "status": "Active"},
            headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "Active"

    @pytest.mark.asyncio
    async def test_change_status_out_of_terminal_state(self, client, make_user, admin_headers):
        await make_user("bob@corp.com", status="Inactive")
        response = await client.post(
            "/api/account/change-status",
            json={"email": "bob@corp.com", "status": "Active"},
            headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_change_status_unknown_email(self, client, admin_headers):
        response = await client.post(
            "/api/account/change-status",
            json={"email": "ghost@corp.com", "status": "Active"},
            headers=admin_headers
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_deactivate_and_reactivate_user(self, client, make_user, login, admin_headers, email_service):
        user = await make_user("bob@corp.com")
        tokens = await login("bob@corp.com")

        response = await client.post(
            f"/api/admin/users/{user.id}/deactivate", json={"reason": "Abuse"}, headers=admin_headers
        )
        assert response.status_code == 200
        refresh = await client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert refresh.status_code == 401
        me = await client.get("/api/me", headers={"Authorization": f"Bearer {tokens['access_token']}"})
        assert me.status_code == 401

        response = await client.post(f"/api/admin/users/{user.id}/reactivate", headers=admin_headers)
        assert response.status_code == 200
        await login("bob@corp.com")
        assert [mail["to"] for mail in email_service.sent_emails] == ["bob@corp.com", "bob@corp.com"]

    @pytest.mark.asyncio
    async def test_cannot_deactivate_self(self, client, super_admin, admin_headers):
        response = await client.post(
            f"/api/admin/users/{super_admin.id}/deactivate", json={}, headers=admin_headers
        )
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_reactivate_requires_inactive(self, client, make_user, admin_headers):
        user = await make_user("bob@corp.com")
        response = await client.post(f"/api/admin/users/{user.id}/reactivate", headers=admin_headers)
        assert response.status_code == 400


@pytest.mark.asyncio
async def test_dashboard_stats(client, admin_headers, make_org, make_user):
    await make_org("Acme")
    await make_org("Globex", is_active=False)
    await make_user("pending@corp.com", role="OrganizationAdmin", status="Pending")

    response = await client.get("/api/admin/dashboard-stats", headers=admin_headers)

    assert response.status_code == 200
    stats = response.json()
    assert stats["total_users"] == 4
    assert stats["active_users"] == 3
    assert stats["pending_approvals"] == 1
    assert stats["total_organizations"] == 2
    assert stats["active_organizations"] == 1
    assert stats["active_plans"] == 3
    assert stats["pending_upgrade_requests"] == 0


@pytest.mark.asyncio
async def test_list_users(client, admin_headers, make_user):
    await make_user("bob@corp.com")
    response = await client.get("/api/admin/users", headers=admin_headers)
    assert sorted(user["email"] for user in response.json()) == ["bob@corp.com", "root@corp.com"]
