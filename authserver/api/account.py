"""
Account API routes.
"""
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.services.admin_service import AdminService
from authserver.schemas.user import AccountInfoResponse, ChangeUserStatusRequest
from authserver.api.deps import Principal, get_current_principal, require_super_admin

router = APIRouter(prefix="/api/account", tags=["account"])


@router.get("/info", response_model=AccountInfoResponse)
async def account_info(principal: Principal = Depends(get_current_principal)):
    user = principal.user
    return AccountInfoResponse(
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        status=user.status
    )


@router.post("/change-status")
async def change_status(
    request: ChangeUserStatusRequest,
    principal: Principal = Depends(require_super_admin),
    session: AsyncSession = Depends(get_session)
):
    """Change a user's status. Only transitions allowed by the status table succeed."""
    admin_service = AdminService(session)
    return await admin_service.change_status(principal.user, request.email, request.status.value)
