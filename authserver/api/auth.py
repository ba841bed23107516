"""
Authentication API routes.
"""
from fastapi import APIRouter, Depends
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.services.auth_service import AuthService
from authserver.services.notifier import Notifier
from authserver.schemas.auth import (
    RegisterRequest, RegisterResponse, LoginRequest, TokenResponse, RefreshRequest,
    RefreshResponse, LogoutRequest, ChangePasswordRequest, UpdateProfileRequest, MeResponse
)
from authserver.schemas.common import MessageResponse
from authserver.schemas.user import UserSummary
from authserver.api.deps import Principal, get_current_principal, get_notifier

router = APIRouter(prefix="/api/auth", tags=["auth"])
me_router = APIRouter(prefix="/api", tags=["auth"])


@router.post("/register", response_model=RegisterResponse)
async def register(
    request: RegisterRequest,
    session: AsyncSession = Depends(get_session),
    notifier: Notifier = Depends(get_notifier)
):
    """Register a DefaultUser or a pending OrganizationAdmin."""
    auth_service = AuthService(session, notifier)
    return await auth_service.register(
        email=request.email,
        password=request.password,
        first_name=request.first_name,
        last_name=request.last_name,
        role=request.role,
        requested_org_name=request.requested_org_name
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    request: LoginRequest,
    session: AsyncSession = Depends(get_session)
):
    """Login and get access + refresh tokens."""
    auth_service = AuthService(session)
    return await auth_service.login(email=request.email, password=request.password)


@router.post("/refresh", response_model=RefreshResponse)
async def refresh_token(
    request: RefreshRequest,
    session: AsyncSession = Depends(get_session)
):
    """Exchange a refresh token for a new token pair."""
    auth_service = AuthService(session)
    return await auth_service.refresh(request.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: LogoutRequest,
    session: AsyncSession = Depends(get_session)
):
    """Logout by revoking the refresh token, if one is supplied."""
    auth_service = AuthService(session)
    await auth_service.logout(request.refresh_token)
    return MessageResponse(message="Logged out successfully")


@router.post("/change-password", response_model=MessageResponse)
async def change_password(
    request: ChangePasswordRequest,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session)
):
    """Change password for logged-in user."""
    auth_service = AuthService(session)
    await auth_service.change_password(
        principal.user,
        request.current_password,
        request.new_password,
        request.confirm_password
    )
    return MessageResponse(message="Password changed successfully")


@router.put("/update-profile")
async def update_profile(
    request: UpdateProfileRequest,
    principal: Principal = Depends(get_current_principal),
    session: AsyncSession = Depends(get_session)
):
    auth_service = AuthService(session)
    return await auth_service.update_profile(principal.user, request.first_name, request.last_name)


@me_router.get("/me", response_model=MeResponse)
async def get_me(principal: Principal = Depends(get_current_principal)):
    """Get current user info."""
    return MeResponse(user=UserSummary.from_user(principal.user, principal.roles), roles=principal.roles)
