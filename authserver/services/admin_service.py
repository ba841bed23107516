"""
Admin service - SuperAdmin operations on users and org-admin registrations.
"""
import logging
import uuid
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.config import settings
from authserver.core.clock import utcnow, add_months
from authserver.core.exceptions import (
    raise_not_found,
    raise_already_exists,
    raise_business_rule,
    raise_validation_error
)
from authserver.core.security import slugify
from authserver.models.organization import Organization
from authserver.models.user import User, UserStatus, RoleName, is_valid_status_change
from authserver.repositories.organization_repo import OrganizationRepository, SubscriptionPlanRepository
from authserver.repositories.upgrade_request_repo import UpgradeRequestRepository
from authserver.repositories.user_repo import UserRepository
from authserver.schemas.user import UserSummary
from authserver.services.credential_store import SQLCredentialStore
from authserver.services.notifier import Notifier
from authserver.services.token_service import TokenIssuer

logger = logging.getLogger(__name__)


class AdminService:
    """Service for SuperAdmin user management."""

    def __init__(self, session: AsyncSession, notifier: Optional[Notifier] = None):
        self.session = session
        self.user_repo = UserRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.plan_repo = SubscriptionPlanRepository(session)
        self.upgrade_repo = UpgradeRequestRepository(session)
        self.credentials = SQLCredentialStore(session)
        self.tokens = TokenIssuer(session)
        self.notifier = notifier or Notifier()

    async def _get_user(self, user_id: uuid.UUID) -> User:
        user = await self.user_repo.get(user_id)
        if not user:
            raise_not_found("User", str(user_id))
        return user

    async def _summaries(self, users: List[User]) -> List[UserSummary]:
        return [UserSummary.from_user(user, await self.user_repo.get_roles(user.id)) for user in users]

    async def list_users(self) -> List[UserSummary]:
        return await self._summaries(await self.user_repo.list())

    async def list_pending_org_admins(self) -> List[UserSummary]:
        pending = await self.user_repo.list_pending_in_role(RoleName.ORGANIZATION_ADMIN.value)
        return await self._summaries(pending)

    # =========================================================================
    # ORG-ADMIN APPROVAL
    # =========================================================================

    async def approve_org_admin(
        self,
        actor: User,
        user_id: uuid.UUID,
        organization_name: Optional[str] = None
    ) -> dict:
        """
        Create the organization on the default plan and activate its owner.
        Everything is committed together; the notification is queued afterwards.
        """
        user = await self._get_user(user_id)
        if user.status != UserStatus.PENDING.value:
            raise_business_rule("User is not in pending status")

        name = (organization_name or user.requested_org_name or "").strip()
        if not name:
            raise_validation_error("Organization name is required", "organization_name")

        plan = await self.plan_repo.get_by_name(settings.DEFAULT_PLAN_NAME)
        if not plan:
            raise_business_rule("No subscription plan available")

        slug = slugify(name)
        if not slug:
            raise_validation_error("Organization name must contain letters or digits", "organization_name")
        if await self.org_repo.get_by_slug(slug):
            raise_already_exists("Organization", "slug", slug)

        now = utcnow()
        org = Organization(
            name=name,
            slug=slug,
            owner_id=user.id,
            subscription_plan_id=plan.id,
            cv_uploads_this_month=0,
            cv_uploads_reset_at=add_months(now, 1)
        )
        self.session.add(org)
        await self.session.flush()

        user.status = UserStatus.ACTIVE.value
        user.organization_id = org.id
        user.requested_org_name = None
        user.updated_at = now
        self.session.add(user)
        await self.credentials.assign_role(user, RoleName.ORGANIZATION_ADMIN.value)

        await self.session.commit()
        await self.session.refresh(org)
        logger.info(f"{actor.email} approved organization {org.name} ({org.slug}) for user {user.email}")

        self.notifier.notify(
            "send_org_admin_approved",
            to=user.email,
            name=user.full_name or user.email,
            org_name=org.name
        )
        return {
            "message": "Organization approved and created successfully",
            "organization_id": str(org.id),
            "organization_name": org.name,
            "slug": org.slug
        }

    async def reject_org_admin(self, actor: User, user_id: uuid.UUID, reason: Optional[str]) -> dict:
        user = await self._get_user(user_id)
        if user.status != UserStatus.PENDING.value:
            raise_business_rule("User is not in pending status")

        user.status = UserStatus.INACTIVE.value
        user.deactivated_at = utcnow()
        user.deactivation_reason = reason
        await self.user_repo.save(user)
        logger.info(f"{actor.email} rejected organization registration of {user.email}. Reason: {reason}")

        self.notifier.notify(
            "send_org_admin_rejected",
            to=user.email,
            name=user.full_name or user.email,
            reason=reason
        )
        return {"message": "Organization registration rejected", "reason": reason}

    # =========================================================================
    # STATUS MANAGEMENT
    # =========================================================================

    async def change_status(self, actor: User, email: str, new_status: str) -> dict:
        """Status change by email, restricted to the allowed transition table."""
        user = await self.credentials.find_by_email(email)
        if not user:
            raise_not_found("User", email)

        if not is_valid_status_change(user.status, new_status):
            raise_business_rule(f"Invalid status change from {user.status or 'None'} to {new_status}")

        previous = user.status
        user.status = new_status
        if new_status == UserStatus.INACTIVE.value:
            user.deactivated_at = utcnow()
            await self.tokens.revoke_all_for_user(user.id, commit=False)
        await self.user_repo.save(user)
        logger.info(f"{actor.email} changed status of {user.email} from {previous} to {new_status}")

        return {"message": "User status updated successfully", "email": user.email, "status": user.status}

    async def deactivate_user(self, actor: User, user_id: uuid.UUID, reason: Optional[str]) -> dict:
        user = await self._get_user(user_id)
        if user.id == actor.id:
            raise_business_rule("You cannot deactivate your own account")
        if user.status == UserStatus.INACTIVE.value:
            raise_business_rule("User is already inactive")

        user.status = UserStatus.INACTIVE.value
        user.deactivated_at = utcnow()
        user.deactivation_reason = reason
        await self.tokens.revoke_all_for_user(user.id, commit=False)
        await self.user_repo.save(user)
        logger.info(f"{actor.email} deactivated user {user.email}. Reason: {reason}")

        self.notifier.notify(
            "send_account_deactivated",
            to=user.email,
            name=user.full_name or user.email,
            reason=reason
        )
        return {"message": "User deactivated successfully", "user_id": str(user.id)}

    async def reactivate_user(self, actor: User, user_id: uuid.UUID) -> dict:
        """Explicit Inactive -> Active restore."""
        user = await self._get_user(user_id)
        if user.status != UserStatus.INACTIVE.value:
            raise_business_rule("User is not inactive")

        user.status = UserStatus.ACTIVE.value
        user.deactivated_at = None
        user.deactivation_reason = None
        await self.user_repo.save(user)
        logger.info(f"{actor.email} reactivated user {user.email}")

        self.notifier.notify(
            "send_account_reactivated",
            to=user.email,
            name=user.full_name or user.email
        )
        return {"message": "User reactivated successfully", "user_id": str(user.id)}

    # =========================================================================
    # DASHBOARD
    # =========================================================================

    async def dashboard_stats(self) -> dict:
        pending = await self.user_repo.list_pending_in_role(RoleName.ORGANIZATION_ADMIN.value)
        return {
            "total_users": await self.user_repo.count(),
            "active_users": await self.user_repo.count({"status": UserStatus.ACTIVE.value}),
            "pending_approvals": len(pending),
            "total_organizations": await self.org_repo.count(),
            "active_organizations": await self.org_repo.count({"is_active": True}),
            "active_plans": await self.plan_repo.count({"is_active": True}),
            "pending_upgrade_requests": await self.upgrade_repo.count_pending()
        }
