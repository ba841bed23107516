"""
Organization API routes for members of an organization.
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.services.org_service import OrganizationService
from authserver.services.quota_service import QuotaLedger
from authserver.services.notifier import Notifier
from authserver.schemas.organization import (
    InviteMemberRequest, OrganizationResponse, OrganizationStatsResponse
)
from authserver.schemas.quota import QuotaCheckResponse
from authserver.schemas.user import UserSummary
from authserver.api.deps import (
    Principal, get_current_principal, require_org_admin, require_org_member, get_notifier
)

router = APIRouter(prefix="/api/organization", tags=["organization"])


@router.get("/current", response_model=OrganizationResponse)
async def get_current_organization(
    principal: Principal = Depends(require_org_member),
    session: AsyncSession = Depends(get_session)
):
    """Get the caller's organization."""
    return await OrganizationService(session).get_current(principal.user)


@router.get("/members", response_model=List[UserSummary])
async def list_members(
    principal: Principal = Depends(require_org_member),
    session: AsyncSession = Depends(get_session)
):
    return await OrganizationService(session).list_members(principal.user)


@router.get("/stats", response_model=OrganizationStatsResponse)
async def get_stats(
    principal: Principal = Depends(require_org_member),
    session: AsyncSession = Depends(get_session)
):
    return await OrganizationService(session).get_stats(principal.user)


@router.post("/invite")
async def invite_member(
    request: InviteMemberRequest,
    principal: Principal = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    """
    Invite a user to the organization.
    In DEV_MODE the temporary password is echoed as _dev_temporary_password.
    """
    org_service = OrganizationService(session, notifier)
    return await org_service.invite_member(
        principal.user,
        email=request.email,
        first_name=request.first_name,
        last_name=request.last_name
    )


@router.delete("/members/{member_id}")
async def remove_member(
    member_id: uuid.UUID,
    principal: Principal = Depends(require_org_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    org_service = OrganizationService(session, notifier)
    return await org_service.remove_member(principal.user, member_id)


@router.get("/quota/check", response_model=QuotaCheckResponse)
async def check_quota(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session)
):
    return await QuotaLedger(session).check(principal.user, principal.roles)


@router.post("/quota/increment")
async def increment_quota(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session)
):
    return await QuotaLedger(session).increment(principal.user, principal.roles)
