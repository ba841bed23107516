"""
SuperAdmin API routes - users, org-admin approvals and organizations.
"""
import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.services.admin_service import AdminService
from authserver.services.org_service import OrganizationService
from authserver.services.notifier import Notifier
from authserver.schemas.organization import (
    ApproveOrgAdminRequest, RejectOrgAdminRequest, ChangePlanRequest, OrganizationResponse
)
from authserver.schemas.user import UserSummary, DeactivateRequest
from authserver.api.deps import Principal, require_super_admin, get_notifier

router = APIRouter(prefix="/api/admin", tags=["admin"])


# =============================================================================
# USERS
# =============================================================================

@router.get("/users", response_model=List[UserSummary])
async def list_users(
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await AdminService(session).list_users()


@router.get("/pending-org-admins", response_model=List[UserSummary])
async def list_pending_org_admins(
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    """OrganizationAdmin registrations awaiting approval."""
    return await AdminService(session).list_pending_org_admins()


@router.post("/approve-org-admin")
async def approve_org_admin(
    request: ApproveOrgAdminRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    """Create the organization and activate its admin."""
    admin_service = AdminService(session, notifier)
    return await admin_service.approve_org_admin(principal.user, request.user_id, request.organization_name)


@router.post("/reject-org-admin")
async def reject_org_admin(
    request: RejectOrgAdminRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    admin_service = AdminService(session, notifier)
    return await admin_service.reject_org_admin(principal.user, request.user_id, request.reason)


@router.get("/dashboard-stats")
async def dashboard_stats(
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await AdminService(session).dashboard_stats()


@router.post("/users/{user_id}/deactivate")
async def deactivate_user(
    user_id: uuid.UUID,
    request: DeactivateRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    admin_service = AdminService(session, notifier)
    return await admin_service.deactivate_user(principal.user, user_id, request.reason)


@router.post("/users/{user_id}/reactivate")
async def reactivate_user(
    user_id: uuid.UUID,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    admin_service = AdminService(session, notifier)
    return await admin_service.reactivate_user(principal.user, user_id)


# =============================================================================
# ORGANIZATIONS
# =============================================================================

@router.get("/organizations", response_model=List[OrganizationResponse])
async def list_organizations(
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await OrganizationService(session).list_organizations()


@router.get("/organizations/{org_id}", response_model=OrganizationResponse)
async def get_organization(
    org_id: uuid.UUID,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    return await OrganizationService(session).get_details(org_id)


@router.post("/organizations/{org_id}/deactivate")
async def deactivate_organization(
    org_id: uuid.UUID,
    request: DeactivateRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    """Deactivate an organization; its members can no longer log in or refresh."""
    org_service = OrganizationService(session, notifier)
    return await org_service.deactivate(principal.user, org_id, request.reason)


@router.post("/organizations/{org_id}/reactivate")
async def reactivate_organization(
    org_id: uuid.UUID,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    org_service = OrganizationService(session, notifier)
    return await org_service.reactivate(principal.user, org_id)


@router.post("/organizations/{org_id}/change-plan")
async def change_organization_plan(
    org_id: uuid.UUID,
    request: ChangePlanRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    org_service = OrganizationService(session, notifier)
    return await org_service.change_plan(principal.user, org_id, request.plan_id, request.reason)
