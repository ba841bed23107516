"""
Upgrade request service - organization plan change workflow.

Pending --approve--> Approved (plan applied)
Pending --reject---> Rejected
Pending --cancel---> Cancelled
Every non-pending state is terminal.
"""
import logging
import uuid
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.core.clock import utcnow
from authserver.core.exceptions import (
    raise_not_found,
    raise_business_rule,
    raise_validation_error
)
from authserver.models.organization import Organization, SubscriptionPlan
from authserver.models.upgrade_request import UpgradeRequest, UpgradeRequestStatus
from authserver.models.user import User, RoleName
from authserver.repositories.organization_repo import OrganizationRepository, SubscriptionPlanRepository
from authserver.repositories.upgrade_request_repo import UpgradeRequestRepository
from authserver.repositories.user_repo import UserRepository
from authserver.schemas.plan import PlanResponse
from authserver.schemas.upgrade_request import UpgradeRequestResponse
from authserver.services.notifier import Notifier
from authserver.services.org_service import OrganizationService

logger = logging.getLogger(__name__)


def is_upgrade(current: Optional[SubscriptionPlan], target: SubscriptionPlan) -> bool:
    """A plan is an upgrade when it raises either limit."""
    if current is None:
        return True
    return target.max_users > current.max_users or target.max_cv_uploads > current.max_cv_uploads


class UpgradeRequestService:
    """Service for upgrade request operations."""

    def __init__(self, session: AsyncSession, notifier: Optional[Notifier] = None):
        self.session = session
        self.request_repo = UpgradeRequestRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.plan_repo = SubscriptionPlanRepository(session)
        self.user_repo = UserRepository(session)
        self.notifier = notifier or Notifier()
        self.org_service = OrganizationService(session, self.notifier)

    async def _get_request(self, request_id: uuid.UUID) -> UpgradeRequest:
        request = await self.request_repo.get(request_id)
        if not request:
            raise_not_found("Upgrade request", str(request_id))
        return request

    async def _plan_label(self, plan_id: uuid.UUID) -> Optional[str]:
        plan = await self.plan_repo.get(plan_id)
        return plan.display_name if plan else None

    async def describe(self, request: UpgradeRequest) -> UpgradeRequestResponse:
        org = await self.org_repo.get(request.organization_id)
        requester = await self.user_repo.get(request.requested_by_id)
        return UpgradeRequestResponse(
            id=request.id,
            organization_id=request.organization_id,
            organization_name=org.name if org else None,
            current_plan_id=request.current_plan_id,
            current_plan_name=await self._plan_label(request.current_plan_id),
            requested_plan_id=request.requested_plan_id,
            requested_plan_name=await self._plan_label(request.requested_plan_id),
            requested_by_id=request.requested_by_id,
            requested_by_email=requester.email if requester else None,
            reason=request.reason,
            status=request.status,
            processed_by_id=request.processed_by_id,
            processed_at=request.processed_at,
            rejection_reason=request.rejection_reason,
            created_at=request.created_at,
        )

    # =========================================================================
    # ORGANIZATION ADMIN
    # =========================================================================

    async def available_plans(self, user: User) -> List[dict]:
        """Active plans other than the organization's current one."""
        org = await self.org_service.get_user_organization(user)
        current = await self.plan_repo.get(org.subscription_plan_id)
        plans = await self.plan_repo.list_ordered(active_only=True)
        return [
            {**PlanResponse.from_plan(plan).model_dump(), "is_upgrade": is_upgrade(current, plan)}
            for plan in plans
            if plan.id != org.subscription_plan_id
        ]

    async def my_pending_request(self, user: User) -> Optional[UpgradeRequestResponse]:
        org = await self.org_service.get_user_organization(user)
        request = await self.request_repo.get_pending_for_org(org.id)
        return await self.describe(request) if request else None

    async def my_history(self, user: User) -> List[UpgradeRequestResponse]:
        org = await self.org_service.get_user_organization(user)
        return [await self.describe(request) for request in await self.request_repo.list_for_org(org.id)]

    async def submit(self, user: User, requested_plan_id: uuid.UUID, reason: Optional[str]) -> UpgradeRequestResponse:
        org = await self.org_service.get_user_organization(user)

        if await self.request_repo.get_pending_for_org(org.id):
            raise_business_rule("Your organization already has a pending upgrade request")

        plan = await self.plan_repo.get(requested_plan_id)
        if not plan:
            raise_not_found("Subscription plan", str(requested_plan_id))
        if not plan.is_active:
            raise_validation_error("Requested plan is not available", "requested_plan_id")
        if plan.id == org.subscription_plan_id:
            raise_validation_error("Organization is already on this plan", "requested_plan_id")

        request = UpgradeRequest(
            organization_id=org.id,
            current_plan_id=org.subscription_plan_id,
            requested_plan_id=plan.id,
            requested_by_id=user.id,
            reason=(reason or "").strip()
        )
        self.session.add(request)
        await self.session.commit()
        await self.session.refresh(request)
        logger.info(f"{user.email} requested plan {plan.name} for organization {org.name}")

        current_label = await self._plan_label(org.subscription_plan_id)
        for admin in await self.user_repo.list_in_role(RoleName.SUPER_ADMIN.value):
            self.notifier.notify(
                "send_upgrade_request_received",
                to=admin.email,
                org_name=org.name,
                requester_email=user.email,
                current_plan=current_label,
                requested_plan=plan.display_name,
                reason=request.reason
            )
        self.notifier.notify(
            "send_upgrade_request_submitted",
            to=user.email,
            name=user.full_name or user.email,
            org_name=org.name,
            requested_plan=plan.display_name
        )
        return await self.describe(request)

    async def cancel(self, user: User, request_id: uuid.UUID) -> dict:
        org = await self.org_service.get_user_organization(user)
        request = await self._get_request(request_id)
        if request.organization_id != org.id:
            raise_not_found("Upgrade request", str(request_id))
        if request.status != UpgradeRequestStatus.PENDING.value:
            raise_business_rule("Only pending requests can be cancelled")

        request.status = UpgradeRequestStatus.CANCELLED.value
        await self.request_repo.save(request)
        logger.info(f"{user.email} cancelled upgrade request {request.id}")
        return {"message": "Upgrade request cancelled"}

    # =========================================================================
    # SUPERADMIN
    # =========================================================================

    async def list_pending(self) -> List[UpgradeRequestResponse]:
        requests = await self.request_repo.list_by_status(UpgradeRequestStatus.PENDING.value)
        return [await self.describe(request) for request in requests]

    async def count_pending(self) -> int:
        return await self.request_repo.count_pending()

    async def list_all(self, status: Optional[str] = None) -> List[UpgradeRequestResponse]:
        if status is not None and status not in {s.value for s in UpgradeRequestStatus}:
            raise_validation_error(f"Unknown status '{status}'", "status")
        return [await self.describe(request) for request in await self.request_repo.list_by_status(status)]

    async def _pending_with_org(self, request_id: uuid.UUID) -> tuple:
        request = await self._get_request(request_id)
        if request.status != UpgradeRequestStatus.PENDING.value:
            raise_business_rule(f"Request is already {request.status.lower()}")
        org: Organization = await self.org_service.get_organization(request.organization_id)
        return request, org

    async def approve(self, actor: User, request_id: uuid.UUID) -> dict:
        """Apply the requested plan. The downgrade guard is re-checked here."""
        request, org = await self._pending_with_org(request_id)
        plan = await self.plan_repo.get(request.requested_plan_id)
        if not plan:
            raise_not_found("Subscription plan", str(request.requested_plan_id))
        if not plan.is_active:
            raise_business_rule("Requested plan is no longer active")

        await self.org_service.ensure_plan_fits(org, plan)

        now = utcnow()
        org.subscription_plan_id = plan.id
        org.updated_at = now
        request.status = UpgradeRequestStatus.APPROVED.value
        request.processed_by_id = actor.id
        request.processed_at = now
        request.updated_at = now
        self.session.add(org)
        self.session.add(request)
        await self.session.commit()
        logger.info(f"{actor.email} approved upgrade request {request.id}: {org.name} -> {plan.name}")

        requester = await self.user_repo.get(request.requested_by_id)
        if requester:
            self.notifier.notify(
                "send_upgrade_approved",
                to=requester.email,
                name=requester.full_name or requester.email,
                org_name=org.name,
                plan=plan.display_name
            )
        return {"message": "Upgrade request approved", "organization_id": str(org.id), "plan_name": plan.display_name}

    async def reject(self, actor: User, request_id: uuid.UUID, reason: Optional[str]) -> dict:
        request, org = await self._pending_with_org(request_id)

        now = utcnow()
        request.status = UpgradeRequestStatus.REJECTED.value
        request.rejection_reason = reason
        request.processed_by_id = actor.id
        request.processed_at = now
        await self.request_repo.save(request)
        logger.info(f"{actor.email} rejected upgrade request {request.id}. Reason: {reason}")

        requester = await self.user_repo.get(request.requested_by_id)
        if requester:
            self.notifier.notify(
                "send_upgrade_rejected",
                to=requester.email,
                name=requester.full_name or requester.email,
                org_name=org.name,
                plan=await self._plan_label(request.requested_plan_id) or "requested",
                reason=reason
            )
        return {"message": "Upgrade request rejected"}
