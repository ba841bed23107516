"""
Subscription plan service - plan catalogue management.
"""
import logging
import re
import uuid
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.core.exceptions import (
    raise_not_found,
    raise_already_exists,
    raise_business_rule,
    raise_validation_error
)
from authserver.models.organization import SubscriptionPlan
from authserver.models.user import User
from authserver.repositories.organization_repo import OrganizationRepository, SubscriptionPlanRepository
from authserver.schemas.plan import PlanResponse

logger = logging.getLogger(__name__)


def normalize_plan_name(name: str) -> str:
    """Lowercase with whitespace runs replaced by dashes."""
    return re.sub(r"\s+", "-", name.strip().lower())


class PlanService:
    """Service for subscription plan CRUD."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.plan_repo = SubscriptionPlanRepository(session)
        self.org_repo = OrganizationRepository(session)

    async def get_plan(self, plan_id: uuid.UUID) -> SubscriptionPlan:
        plan = await self.plan_repo.get(plan_id)
        if not plan:
            raise_not_found("Subscription plan", str(plan_id))
        return plan

    async def list_public(self) -> List[PlanResponse]:
        """Active plans in display order."""
        plans = await self.plan_repo.list_ordered(active_only=True)
        return [PlanResponse.from_plan(plan) for plan in plans]

    async def list_all(self) -> List[PlanResponse]:
        """Every plan with the number of organizations on it."""
        plans = await self.plan_repo.list_ordered()
        counts = await self.plan_repo.organization_counts()
        return [PlanResponse.from_plan(plan, counts.get(plan.id, 0)) for plan in plans]

    async def get_details(self, plan_id: uuid.UUID) -> PlanResponse:
        plan = await self.get_plan(plan_id)
        return PlanResponse.from_plan(plan, await self.org_repo.count_by_plan(plan.id))

    async def _ensure_name_free(self, name: str, exclude_id: Optional[uuid.UUID] = None) -> None:
        existing = await self.plan_repo.get_by_name(name)
        if existing and existing.id != exclude_id:
            raise_already_exists("Subscription plan", "name", name)

    async def create_plan(self, actor: User, data: dict) -> PlanResponse:
        name = normalize_plan_name(data["name"])
        if not name:
            raise_validation_error("Plan name is required", "name")
        await self._ensure_name_free(name)

        features = data.pop("features", None) or []
        plan = SubscriptionPlan(**{**data, "name": name})
        plan.set_features(features)
        self.session.add(plan)
        await self.session.commit()
        await self.session.refresh(plan)
        logger.info(f"{actor.email} created subscription plan {plan.name}")
        return PlanResponse.from_plan(plan, 0)

    async def update_plan(self, actor: User, plan_id: uuid.UUID, data: dict) -> PlanResponse:
        """Partial update. Fields left out of the request are untouched."""
        plan = await self.get_plan(plan_id)

        if data.get("name") is not None:
            name = normalize_plan_name(data["name"])
            if not name:
                raise_validation_error("Plan name is required", "name")
            await self._ensure_name_free(name, exclude_id=plan.id)
            data["name"] = name

        if "features" in data:
            features = data.pop("features")
            if features is not None:
                plan.set_features(features)

        for field, value in data.items():
            if value is not None and hasattr(plan, field):
                setattr(plan, field, value)

        await self.plan_repo.save(plan)
        logger.info(f"{actor.email} updated subscription plan {plan.name}")
        return PlanResponse.from_plan(plan, await self.org_repo.count_by_plan(plan.id))

    async def toggle_active(self, actor: User, plan_id: uuid.UUID) -> PlanResponse:
        plan = await self.get_plan(plan_id)
        plan.is_active = not plan.is_active
        await self.plan_repo.save(plan)
        logger.info(
            f"{actor.email} {'activated' if plan.is_active else 'deactivated'} subscription plan {plan.name}"
        )
        return PlanResponse.from_plan(plan, await self.org_repo.count_by_plan(plan.id))

    async def can_delete(self, plan_id: uuid.UUID) -> dict:
        plan = await self.get_plan(plan_id)
        count = await self.org_repo.count_by_plan(plan.id)
        return {
            "can_delete": count == 0,
            "organizations_count": count,
            "reason": None if count == 0 else f"{count} organization(s) are using this plan"
        }

    async def delete_plan(self, actor: User, plan_id: uuid.UUID) -> dict:
        """Delete a plan no organization references."""
        plan = await self.get_plan(plan_id)
        count = await self.org_repo.count_by_plan(plan.id)
        if count > 0:
            raise_business_rule(
                f"Cannot delete plan '{plan.display_name}': {count} organization(s) are using it",
                organizations_count=count
            )

        await self.plan_repo.delete(plan.id)
        logger.info(f"{actor.email} deleted subscription plan {plan.name}")
        return {"message": "Subscription plan deleted successfully"}
