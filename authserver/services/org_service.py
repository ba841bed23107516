"""
Organization service - membership management and organization lifecycle.
"""
import logging
import uuid
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.config import settings
from authserver.core.clock import utcnow
from authserver.core.exceptions import (
    raise_not_found,
    raise_business_rule
)
from authserver.core.security import generate_temporary_password
from authserver.models.organization import Organization, SubscriptionPlan
from authserver.models.user import User, UserStatus, RoleName
from authserver.repositories.organization_repo import OrganizationRepository, SubscriptionPlanRepository
from authserver.repositories.user_repo import UserRepository
from authserver.schemas.organization import OrganizationResponse
from authserver.schemas.user import UserSummary
from authserver.services.credential_store import SQLCredentialStore
from authserver.services.notifier import Notifier
from authserver.services.quota_service import QuotaLedger
from authserver.services.token_service import TokenIssuer

logger = logging.getLogger(__name__)


class OrganizationService:
    """Service for organization management."""

    def __init__(self, session: AsyncSession, notifier: Optional[Notifier] = None):
        self.session = session
        self.user_repo = UserRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.plan_repo = SubscriptionPlanRepository(session)
        self.credentials = SQLCredentialStore(session)
        self.tokens = TokenIssuer(session)
        self.notifier = notifier or Notifier()

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    async def get_organization(self, org_id: uuid.UUID) -> Organization:
        org = await self.org_repo.get(org_id)
        if not org:
            raise_not_found("Organization", str(org_id))
        return org

    async def get_user_organization(self, user: User) -> Organization:
        """The organization a member belongs to."""
        if not user.organization_id:
            raise_not_found("Organization")
        return await self.get_organization(user.organization_id)

    async def _plan_for(self, org: Organization) -> SubscriptionPlan:
        plan = await self.plan_repo.get(org.subscription_plan_id)
        if not plan:
            raise_not_found("Subscription plan", str(org.subscription_plan_id))
        return plan

    async def describe(self, org: Organization) -> OrganizationResponse:
        plan = await self.plan_repo.get(org.subscription_plan_id)
        member_count = await self.user_repo.count_active_members(org.id)
        return OrganizationResponse.build(org, plan, member_count)

    async def ensure_plan_fits(self, org: Organization, plan: SubscriptionPlan) -> None:
        """Downgrade guard: the target plan must hold every active member."""
        member_count = await self.user_repo.count_active_members(org.id)
        if plan.max_users < member_count:
            raise_business_rule(
                f"Cannot move to plan '{plan.display_name}': it allows {plan.max_users} users "
                f"but the organization has {member_count} active members",
                current_members=member_count,
                max_users=plan.max_users
            )

    # =========================================================================
    # MEMBER-FACING
    # =========================================================================

    async def get_current(self, user: User) -> OrganizationResponse:
        org = await self.get_user_organization(user)
        return await self.describe(org)

    async def list_members(self, user: User) -> List[UserSummary]:
        org = await self.get_user_organization(user)
        members = await self.user_repo.list_members(org.id)
        return [
            UserSummary.from_user(member, await self.user_repo.get_roles(member.id))
            for member in members
        ]

    async def get_stats(self, user: User) -> dict:
        org = await self.get_user_organization(user)
        plan = await self._plan_for(org)

        ledger = QuotaLedger(self.session)
        if ledger.roll_window(org):
            await self.session.commit()
            await self.session.refresh(org)

        return {
            "member_count": await self.user_repo.count_active_members(org.id),
            "max_users": plan.max_users,
            "cv_uploads_this_month": org.cv_uploads_this_month,
            "cv_upload_limit": plan.max_cv_uploads,
            "cv_uploads_reset_at": org.cv_uploads_reset_at,
            "plan_name": plan.display_name
        }

    async def invite_member(
        self,
        inviter: User,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None
    ) -> dict:
        """
        Add a user to the inviter's organization with a temporary password.
        An Inactive former member of the same organization is reactivated in place;
        the owner keeps its roles, anyone else becomes an OrganizationUser.
        """
        org = await self.get_user_organization(inviter)
        plan = await self._plan_for(org)

        existing = await self.credentials.find_by_email(email)
        if existing is not None:
            if existing.organization_id != org.id:
                raise_business_rule("A user with this email already exists")
            if existing.status != UserStatus.INACTIVE.value:
                raise_business_rule("User is already a member of this organization")

        member_count = await self.user_repo.count_active_members(org.id)
        if member_count >= plan.max_users:
            raise_business_rule(
                f"User limit reached for plan '{plan.display_name}' ({plan.max_users} users)",
                current_members=member_count,
                max_users=plan.max_users
            )

        temporary_password = generate_temporary_password()
        reactivated = existing is not None

        if reactivated:
            member = existing
            await self.credentials.set_password(member, temporary_password, field="password")
            if first_name is not None:
                member.first_name = first_name
            if last_name is not None:
                member.last_name = last_name
            member.status = UserStatus.ACTIVE.value
            member.must_change_password = True
            member.deactivated_at = None
            member.deactivation_reason = None
            member.updated_at = utcnow()
            self.session.add(member)
        else:
            member = await self.credentials.create_user(
                email=email,
                password=temporary_password,
                first_name=first_name,
                last_name=last_name,
                status=UserStatus.ACTIVE.value,
                organization_id=org.id,
                must_change_password=True
            )
        # The owner keeps the roles it already holds
        if member.id != org.owner_id:
            await self.credentials.assign_role(member, RoleName.ORGANIZATION_USER.value, exclusive=True)

        await self.session.commit()
        await self.session.refresh(member)
        logger.info(
            f"{inviter.email} {'reactivated' if reactivated else 'invited'} "
            f"{member.email} into organization {org.name}"
        )

        self.notifier.notify(
            "send_invitation",
            to=member.email,
            name=member.full_name or member.email,
            org_name=org.name,
            temporary_password=temporary_password
        )

        response = {
            "message": "User reactivated successfully" if reactivated else "User invited successfully",
            "user_id": str(member.id),
            "email": member.email,
            "reactivated": reactivated
        }
        # In DEV_MODE, include the password for easy testing
        if settings.DEV_MODE:
            response["_dev_temporary_password"] = temporary_password
            response["_dev_note"] = "This password is only returned in development mode"
        return response

    async def remove_member(self, actor: User, member_id: uuid.UUID) -> dict:
        """Soft-remove a member: status Inactive and refresh tokens revoked."""
        org = await self.get_user_organization(actor)

        member = await self.user_repo.get(member_id)
        if not member or member.organization_id != org.id:
            raise_not_found("Member", str(member_id))

        if member.id == org.owner_id:
            raise_business_rule("The organization owner cannot be removed")

        if member.status == UserStatus.INACTIVE.value:
            raise_business_rule("Member is already inactive")

        roles = await self.user_repo.get_roles(member.id)
        if RoleName.ORGANIZATION_ADMIN.value in roles and member.status == UserStatus.ACTIVE.value:
            if await self.user_repo.count_active_admins(org.id) <= 1:
                raise_business_rule("Cannot remove the last active organization admin")

        member.status = UserStatus.INACTIVE.value
        member.deactivated_at = utcnow()
        member.deactivation_reason = f"Removed from organization by {actor.email}"
        member.updated_at = utcnow()
        self.session.add(member)
        await self.tokens.revoke_all_for_user(member.id, commit=False)
        await self.session.commit()
        logger.info(f"{actor.email} removed {member.email} from organization {org.name}")

        self.notifier.notify(
            "send_account_deactivated",
            to=member.email,
            name=member.full_name or member.email,
            reason=member.deactivation_reason
        )
        return {"message": "Member removed successfully", "user_id": str(member.id)}

    # =========================================================================
    # SUPERADMIN
    # =========================================================================

    async def list_organizations(self) -> List[OrganizationResponse]:
        orgs = await self.org_repo.list()
        return [await self.describe(org) for org in orgs]

    async def get_details(self, org_id: uuid.UUID) -> OrganizationResponse:
        return await self.describe(await self.get_organization(org_id))

    async def deactivate(self, actor: User, org_id: uuid.UUID, reason: Optional[str]) -> dict:
        """Deactivate an organization. Members lose their refresh tokens."""
        org = await self.get_organization(org_id)
        if not org.is_active:
            raise_business_rule("Organization is already deactivated")

        now = utcnow()
        org.is_active = False
        org.deactivated_at = now
        org.deactivation_reason = reason
        org.updated_at = now
        self.session.add(org)

        members = await self.user_repo.list_members(org.id)
        for member in members:
            await self.tokens.revoke_all_for_user(member.id, commit=False)
        await self.session.commit()
        logger.info(f"{actor.email} deactivated organization {org.name}. Reason: {reason}")

        for member in members:
            if member.status == UserStatus.ACTIVE.value:
                self.notifier.notify(
                    "send_organization_deactivated",
                    to=member.email,
                    name=member.full_name or member.email,
                    org_name=org.name,
                    reason=reason
                )
        return {"message": "Organization deactivated successfully", "organization_id": str(org.id)}

    async def reactivate(self, actor: User, org_id: uuid.UUID) -> dict:
        org = await self.get_organization(org_id)
        if org.is_active:
            raise_business_rule("Organization is already active")

        org.is_active = True
        org.deactivated_at = None
        org.deactivation_reason = None
        await self.org_repo.save(org)
        logger.info(f"{actor.email} reactivated organization {org.name}")

        owner = await self.user_repo.get(org.owner_id)
        if owner:
            self.notifier.notify(
                "send_organization_reactivated",
                to=owner.email,
                name=owner.full_name or owner.email,
                org_name=org.name
            )
        return {"message": "Organization reactivated successfully", "organization_id": str(org.id)}

    async def change_plan(
        self,
        actor: User,
        org_id: uuid.UUID,
        plan_id: uuid.UUID,
        reason: Optional[str] = None
    ) -> dict:
        """Admin-initiated plan change with the downgrade guard."""
        org = await self.get_organization(org_id)
        plan = await self.plan_repo.get(plan_id)
        if not plan:
            raise_not_found("Subscription plan", str(plan_id))
        if not plan.is_active:
            raise_business_rule("Subscription plan is not active")
        if org.subscription_plan_id == plan.id:
            raise_business_rule("Organization is already on this plan")

        await self.ensure_plan_fits(org, plan)

        old_plan = await self.plan_repo.get(org.subscription_plan_id)
        org.subscription_plan_id = plan.id
        await self.org_repo.save(org)
        old_plan_name = old_plan.display_name if old_plan else "previous"
        logger.info(
            f"{actor.email} changed plan of organization {org.name} "
            f"from {old_plan_name} to {plan.display_name}"
        )

        owner = await self.user_repo.get(org.owner_id)
        if owner:
            self.notifier.notify(
                "send_plan_changed",
                to=owner.email,
                name=owner.full_name or owner.email,
                org_name=org.name,
                old_plan=old_plan_name,
                new_plan=plan.display_name,
                reason=reason
            )
        return {
            "message": "Subscription plan changed successfully",
            "organization_id": str(org.id),
            "plan_id": str(plan.id),
            "plan_name": plan.display_name
        }
