"""
Subscription plan API routes.
Public read of active plans; SuperAdmin manages the catalogue.
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.services.plan_service import PlanService
from authserver.schemas.plan import CreatePlanRequest, UpdatePlanRequest, PlanResponse, CanDeleteResponse
from authserver.schemas.common import MessageResponse
from authserver.api.deps import Principal, require_super_admin

router = APIRouter(prefix="/api/subscriptionplan", tags=["subscription plans"])


@router.get("", response_model=List[PlanResponse])
async def list_active_plans(session: AsyncSession = Depends(get_session)):
    """Active plans ordered for display."""
    return await PlanService(session).list_public()


@router.get("/admin", response_model=List[PlanResponse])
async def list_all_plans(
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await PlanService(session).list_all()


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(plan_id: uuid.UUID, session: AsyncSession = Depends(get_session)):
    return await PlanService(session).get_details(plan_id)


@router.post("", response_model=PlanResponse)
async def create_plan(
    request: CreatePlanRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await PlanService(session).create_plan(principal.user, request.model_dump())


@router.put("/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: uuid.UUID,
    request: UpdatePlanRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await PlanService(session).update_plan(
        principal.user, plan_id, request.model_dump(exclude_unset=True)
    )


@router.post("/{plan_id}/toggle-active", response_model=PlanResponse)
async def toggle_plan(
    plan_id: uuid.UUID,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await PlanService(session).toggle_active(principal.user, plan_id)


@router.get("/{plan_id}/can-delete", response_model=CanDeleteResponse)
async def can_delete_plan(
    plan_id: uuid.UUID,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await PlanService(session).can_delete(plan_id)


@router.delete("/{plan_id}", response_model=MessageResponse)
async def delete_plan(
    plan_id: uuid.UUID,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    """Delete a plan that no organization uses."""
    return await PlanService(session).delete_plan(principal.user, plan_id)
