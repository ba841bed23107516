"""
Authentication service - handles all auth operations.
"""
import logging
from typing import Optional

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.config import settings
from authserver.core.exceptions import (
    AccountNotActiveError,
    OrganizationInactiveError,
    raise_unauthorized,
    raise_validation_error
)
from authserver.models.quota import NormalUserQuota
from authserver.models.user import User, UserStatus, RoleName
from authserver.repositories.organization_repo import OrganizationRepository
from authserver.repositories.user_repo import UserRepository
from authserver.schemas.user import UserSummary
from authserver.services.credential_store import SQLCredentialStore
from authserver.services.notifier import Notifier
from authserver.services.token_service import TokenIssuer

logger = logging.getLogger(__name__)

SELF_REGISTRATION_ROLES = (RoleName.DEFAULT_USER.value, RoleName.ORGANIZATION_ADMIN.value)

STATUS_MESSAGES = {
    UserStatus.PENDING.value: "Your account is pending approval. Please wait for administrator approval.",
    UserStatus.INACTIVE.value: "Your account has been deactivated. Please contact support.",
}


class AuthService:
    """Service for authentication operations."""

    def __init__(self, session: AsyncSession, notifier: Optional[Notifier] = None):
        self.session = session
        self.credentials = SQLCredentialStore(session)
        self.user_repo = UserRepository(session)
        self.org_repo = OrganizationRepository(session)
        self.tokens = TokenIssuer(session)
        self.notifier = notifier or Notifier()

    async def ensure_can_authenticate(self, user: User) -> None:
        """Status gate, then organization gate."""
        if user.status != UserStatus.ACTIVE.value:
            status = user.status or "Unknown"
            message = STATUS_MESSAGES.get(status, "Your account is not active. Please contact support.")
            raise AccountNotActiveError(status, message)

        if user.organization_id:
            org = await self.org_repo.get(user.organization_id)
            if org is not None and not org.is_active:
                raise OrganizationInactiveError(org.name)

    async def register(
        self,
        email: str,
        password: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: str = RoleName.DEFAULT_USER.value,
        requested_org_name: Optional[str] = None
    ) -> dict:
        """
        Register a DefaultUser (active immediately, gets an individual quota)
        or an OrganizationAdmin (pending until a SuperAdmin approves).
        """
        if role not in SELF_REGISTRATION_ROLES:
            raise_validation_error(
                f"Role must be one of: {', '.join(SELF_REGISTRATION_ROLES)}", "role"
            )

        is_org_admin = role == RoleName.ORGANIZATION_ADMIN.value
        org_name = (requested_org_name or "").strip()
        if is_org_admin and not org_name:
            raise_validation_error(
                "Organization name is required for organization admins", "requested_org_name"
            )

        status = UserStatus.PENDING.value if is_org_admin else UserStatus.ACTIVE.value
        user = await self.credentials.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name,
            status=status,
            requested_org_name=org_name if is_org_admin else None
        )
        await self.credentials.assign_role(user, role)

        if not is_org_admin:
            self.session.add(NormalUserQuota(
                user_id=user.id,
                cv_uploads_limit=settings.NORMAL_USER_CV_LIMIT
            ))

        await self.session.commit()
        await self.session.refresh(user)
        logger.info(f"User {user.email} registered as {role} with status {status}")

        if is_org_admin:
            for admin in await self.credentials.users_in_role(RoleName.SUPER_ADMIN.value):
                self.notifier.notify(
                    "send_new_org_registration",
                    to=admin.email,
                    admin_name=user.full_name,
                    admin_email=user.email,
                    org_name=org_name
                )

        message = "User registered successfully"
        if is_org_admin:
            message = "Registration received. Your organization is pending administrator approval."

        return {"message": message, "status": status, "user_id": str(user.id)}

    async def login(self, email: str, password: str) -> dict:
        """
        Authenticate user and return tokens.
        The password is checked before the account status is disclosed.
        """
        user = await self.credentials.find_by_email(email)
        if not user or not await self.credentials.verify_password(user, password):
            raise_unauthorized("Invalid credentials")

        await self.ensure_can_authenticate(user)

        roles = await self.credentials.get_roles(user)
        access_token, expires_in = self.tokens.issue_access_token(user, roles)
        refresh_token = await self.tokens.issue_refresh_token(user.id)
        await self.user_repo.update_last_login(user)

        logger.info(f"User {user.email} logged in")
        return {
            "user": UserSummary.from_user(user, roles),
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": expires_in,
            "refresh_token": refresh_token,
            "must_change_password": user.must_change_password
        }

    async def refresh(self, refresh_token: str) -> dict:
        """Rotate a refresh token into a new access/refresh pair."""
        stored = await self.tokens.get_active(refresh_token)

        user = await self.credentials.find_by_id(stored.user_id)
        if not user:
            raise_unauthorized("User not found")
        await self.ensure_can_authenticate(user)

        roles = await self.credentials.get_roles(user)
        return await self.tokens.rotate(stored, user, roles)

    async def logout(self, refresh_token: Optional[str]) -> None:
        """Revoke the refresh token when one is supplied."""
        if refresh_token:
            await self.tokens.revoke(refresh_token)

    async def change_password(
        self,
        user: User,
        current_password: str,
        new_password: str,
        confirm_password: str
    ) -> None:
        """Change password for logged-in user and clear the forced-change flag."""
        if not await self.credentials.verify_password(user, current_password):
            raise_validation_error("Current password is incorrect", "current_password")

        if new_password != confirm_password:
            raise_validation_error("Passwords do not match", "confirm_password")

        await self.credentials.set_password(user, new_password)
        user.must_change_password = False
        await self.credentials.update(user)
        logger.info(f"User {user.email} changed password")

    async def update_profile(
        self,
        user: User,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None
    ) -> dict:
        if first_name is not None:
            user.first_name = first_name.strip()
        if last_name is not None:
            user.last_name = last_name.strip()
        await self.credentials.update(user)

        roles = await self.credentials.get_roles(user)
        return {
            "message": "Profile updated successfully",
            "user": UserSummary.from_user(user, roles)
        }
