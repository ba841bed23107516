"""
Organization, subscription plan and quota repositories.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from authserver.models.organization import Organization, SubscriptionPlan
from authserver.models.quota import NormalUserQuota
from authserver.repositories.base import BaseRepository


class OrganizationRepository(BaseRepository[Organization]):
    """Repository for Organization operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Organization, session)

    async def get_by_slug(self, slug: str) -> Optional[Organization]:
        return await self.get_by_field("slug", slug)

    async def count_by_plan(self, plan_id: uuid.UUID) -> int:
        """Organizations referencing a plan."""
        return await self.count({"subscription_plan_id": plan_id})


class SubscriptionPlanRepository(BaseRepository[SubscriptionPlan]):
    """Repository for SubscriptionPlan operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(SubscriptionPlan, session)

    async def get_by_name(self, name: str) -> Optional[SubscriptionPlan]:
        return await self.get_by_field("name", name)

    async def list_ordered(self, active_only: bool = False) -> List[SubscriptionPlan]:
        """Plans ordered by display order."""
        query = select(SubscriptionPlan)
        if active_only:
            query = query.where(SubscriptionPlan.is_active == True)  # noqa: E712
        query = query.order_by(SubscriptionPlan.display_order, SubscriptionPlan.name)
        result = await self.session.exec(query)
        return list(result.all())

    async def organization_counts(self) -> dict:
        """Map of plan id -> number of organizations on it."""
        query = (
            select(Organization.subscription_plan_id, func.count())
            .group_by(Organization.subscription_plan_id)
        )
        result = await self.session.exec(query)
        return {plan_id: count for plan_id, count in result.all()}


class NormalUserQuotaRepository(BaseRepository[NormalUserQuota]):
    """Repository for individual (DefaultUser) quotas."""

    def __init__(self, session: AsyncSession):
        super().__init__(NormalUserQuota, session)

    async def get_by_user(self, user_id: uuid.UUID) -> Optional[NormalUserQuota]:
        return await self.get_by_field("user_id", user_id)
