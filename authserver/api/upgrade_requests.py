"""
Upgrade request API routes.
"""
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.services.upgrade_service import UpgradeRequestService
from authserver.services.notifier import Notifier
from authserver.schemas.upgrade_request import (
    SubmitUpgradeRequest, RejectUpgradeRequest, UpgradeRequestResponse, AvailablePlanResponse
)
from authserver.api.deps import Principal, require_org_admin, require_super_admin, get_notifier

router = APIRouter(prefix="/api/upgraderequest", tags=["upgrade requests"])


# =============================================================================
# ORGANIZATION ADMIN
# =============================================================================

@router.get("/available-plans", response_model=List[AvailablePlanResponse])
async def available_plans(
    principal: Principal = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session)
):
    return await UpgradeRequestService(session).available_plans(principal.user)


@router.get("/my-request", response_model=Optional[UpgradeRequestResponse])
async def my_request(
    principal: Principal = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session)
):
    """The organization's pending request, or null."""
    return await UpgradeRequestService(session).my_pending_request(principal.user)


@router.get("/my-history", response_model=List[UpgradeRequestResponse])
async def my_history(
    principal: Principal = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session)
):
    return await UpgradeRequestService(session).my_history(principal.user)


@router.post("", response_model=UpgradeRequestResponse)
async def submit_request(
    request: SubmitUpgradeRequest,
    principal: Principal = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    service = UpgradeRequestService(session, notifier)
    return await service.submit(principal.user, request.requested_plan_id, request.reason)


@router.post("/{request_id}/cancel")
async def cancel_request(
    request_id: uuid.UUID,
    principal: Principal = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session)
):
    return await UpgradeRequestService(session).cancel(principal.user, request_id)


# =============================================================================
# SUPERADMIN
# =============================================================================

@router.get("/pending", response_model=List[UpgradeRequestResponse])
async def list_pending(
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await UpgradeRequestService(session).list_pending()


@router.get("/pending/count")
async def count_pending(
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return {"count": await UpgradeRequestService(session).count_pending()}


@router.get("/all", response_model=List[UpgradeRequestResponse])
async def list_all(
    status: Optional[str] = Query(None),
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await UpgradeRequestService(session).list_all(status)


@router.post("/{request_id}/approve")
async def approve_request(
    request_id: uuid.UUID,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    """Apply the requested plan to the organization."""
    service = UpgradeRequestService(session, notifier)
    return await service.approve(principal.user, request_id)


@router.post("/{request_id}/reject")
async def reject_request(
    request_id: uuid.UUID,
    request: RejectUpgradeRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    service = UpgradeRequestService(session, notifier)
    return await service.reject(principal.user, request_id, request.reason)
