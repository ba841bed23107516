"""
Quota API routes.
"""
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.services.quota_service import QuotaLedger
from authserver.schemas.quota import QuotaCheckResponse, QuotaUsageResponse
from authserver.api.deps import Principal, get_current_principal

router = APIRouter(prefix="/api/quota", tags=["quota"])


@router.get("/check", response_model=QuotaCheckResponse)
async def check_quota(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session)
):
    """Whether the caller may upload another CV."""
    return await QuotaLedger(session).check(principal.user, principal.roles)


@router.post("/increment")
async def increment_quota(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session)
):
    """Record one CV upload."""
    return await QuotaLedger(session).increment(principal.user, principal.roles)


@router.get("/usage", response_model=QuotaUsageResponse)
async def quota_usage(
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session)
):
    return await QuotaLedger(session).usage(principal.user, principal.roles)
