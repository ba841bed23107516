"""
Quota ledger - CV upload accounting.

Two schemes selected by the caller's primary role:
- DefaultUser: lifetime NormalUserQuota, created lazily on first check.
- OrganizationAdmin / OrganizationUser: monthly counter on the Organization,
  reset lazily once the window has elapsed.
SuperAdmin is unlimited (limit -1) and has no quota record.
"""
import logging
from typing import List, Optional, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.config import settings
from authserver.core.clock import utcnow, add_months
from authserver.core.exceptions import QuotaNotRecognizedError
from authserver.models.organization import Organization, SubscriptionPlan
from authserver.models.quota import NormalUserQuota
from authserver.models.user import User, RoleName, primary_role
from authserver.repositories.organization_repo import (
    OrganizationRepository,
    SubscriptionPlanRepository,
    NormalUserQuotaRepository
)

logger = logging.getLogger(__name__)

UNLIMITED = -1
ORGANIZATION_ROLES = (RoleName.ORGANIZATION_ADMIN, RoleName.ORGANIZATION_USER)


class QuotaLedger:
    """Service for quota checks and increments."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.quota_repo = NormalUserQuotaRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.plan_repo = SubscriptionPlanRepository(session)

    # -------------------------------------------------------------------------
    # Organizational window
    # -------------------------------------------------------------------------

    def roll_window(self, org: Organization) -> bool:
        """
        Reset the monthly counter when the window has elapsed.
        The next reset is one month from now, not from the previous reset time.
        """
        now = utcnow()
        if now < org.cv_uploads_reset_at:
            return False

        org.cv_uploads_this_month = 0
        org.cv_uploads_reset_at = add_months(now, 1)
        org.updated_at = now
        self.session.add(org)
        logger.info(f"Monthly CV upload counter reset for organization {org.name}")
        return True

    async def _organization_with_plan(
        self, user: User
    ) -> Tuple[Organization, SubscriptionPlan]:
        org = await self.org_repo.get(user.organization_id) if user.organization_id else None
        if org is None:
            raise QuotaNotRecognizedError("Organization not found for user")

        plan = await self.plan_repo.get(org.subscription_plan_id)
        if plan is None:
            raise QuotaNotRecognizedError("Subscription plan not found for organization")
        return org, plan

    async def _individual_quota(self, user: User, create: bool) -> Optional[NormalUserQuota]:
        quota = await self.quota_repo.get_by_user(user.id)
        if quota is None and create:
            quota = NormalUserQuota(user_id=user.id, cv_uploads_limit=settings.NORMAL_USER_CV_LIMIT)
            self.session.add(quota)
            await self.session.commit()
            await self.session.refresh(quota)
            logger.info(f"Created individual quota for user {user.email}")
        return quota

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def check(self, user: User, roles: List[str]) -> dict:
        """Report usage and whether another upload is allowed."""
        role = primary_role(roles)

        if role == RoleName.SUPER_ADMIN:
            return {"allowed": True, "used": 0, "limit": UNLIMITED, "scope": "unlimited", "reason": None}

        if role == RoleName.DEFAULT_USER:
            quota = await self._individual_quota(user, create=True)
            allowed = quota.cv_uploads_used < quota.cv_uploads_limit
            return {
                "allowed": allowed,
                "used": quota.cv_uploads_used,
                "limit": quota.cv_uploads_limit,
                "scope": "individual",
                "reason": None if allowed else f"Free quota exceeded ({quota.cv_uploads_limit} uploads)"
            }

        if role in ORGANIZATION_ROLES:
            org, plan = await self._organization_with_plan(user)
            if self.roll_window(org):
                await self.session.commit()
                await self.session.refresh(org)

            allowed = org.cv_uploads_this_month < plan.max_cv_uploads
            return {
                "allowed": allowed,
                "used": org.cv_uploads_this_month,
                "limit": plan.max_cv_uploads,
                "scope": "organization",
                "reason": None if allowed else "Organization quota exceeded",
                "organization_name": org.name,
                "plan_name": plan.display_name,
                "reset_at": org.cv_uploads_reset_at
            }

        raise QuotaNotRecognizedError()

    async def increment(self, user: User, roles: List[str]) -> dict:
        """
        Record one upload. Limits are reported by check(), not enforced here.
        """
        role = primary_role(roles)

        if role == RoleName.SUPER_ADMIN:
            return {"message": "Quota incremented successfully", "used": 0, "limit": UNLIMITED}

        if role == RoleName.DEFAULT_USER:
            quota = await self._individual_quota(user, create=False)
            if quota is None:
                raise QuotaNotRecognizedError("Quota not found for user")

            quota.cv_uploads_used += 1
            quota.updated_at = utcnow()
            self.session.add(quota)
            await self.session.commit()
            await self.session.refresh(quota)
            logger.info(
                f"Quota incremented for user {user.email}. "
                f"Used: {quota.cv_uploads_used}/{quota.cv_uploads_limit}"
            )
            return {
                "message": "Quota incremented successfully",
                "used": quota.cv_uploads_used,
                "limit": quota.cv_uploads_limit
            }

        if role in ORGANIZATION_ROLES:
            org, plan = await self._organization_with_plan(user)
            self.roll_window(org)
            org.cv_uploads_this_month += 1
            org.updated_at = utcnow()
            self.session.add(org)
            await self.session.commit()
            await self.session.refresh(org)
            logger.info(
                f"Quota incremented for organization {org.name}. "
                f"Used: {org.cv_uploads_this_month}/{plan.max_cv_uploads}"
            )
            return {
                "message": "Quota incremented successfully",
                "used": org.cv_uploads_this_month,
                "limit": plan.max_cv_uploads
            }

        raise QuotaNotRecognizedError()

    async def usage(self, user: User, roles: List[str]) -> dict:
        """Usage summary with a percentage for dashboards."""
        role = primary_role(roles)

        if role == RoleName.SUPER_ADMIN:
            return {"user_type": role.value, "used": 0, "limit": UNLIMITED, "percentage": 0.0}

        if role == RoleName.DEFAULT_USER:
            quota = await self._individual_quota(user, create=True)
            return {
                "user_type": role.value,
                "used": quota.cv_uploads_used,
                "limit": quota.cv_uploads_limit,
                "percentage": _percentage(quota.cv_uploads_used, quota.cv_uploads_limit)
            }

        if role in ORGANIZATION_ROLES:
            check = await self.check(user, roles)
            return {
                "user_type": role.value,
                "used": check["used"],
                "limit": check["limit"],
                "percentage": _percentage(check["used"], check["limit"]),
                "organization_name": check["organization_name"],
                "plan_name": check["plan_name"],
                "reset_at": check["reset_at"]
            }

        raise QuotaNotRecognizedError()


def _percentage(used: int, limit: int) -> float:
    if limit <= 0:
        return 0.0
    return round(used * 100.0 / limit, 2)
