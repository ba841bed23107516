"""
Token issuer - short-lived signed access tokens and opaque rotating refresh tokens.
"""
import logging
import uuid
from datetime import timedelta
from typing import List, Tuple

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.config import settings
from authserver.core.clock import utcnow
from authserver.core.exceptions import TokenInvalidError
from authserver.core.security import create_access_token, generate_refresh_token_value
from authserver.models.token import RefreshToken
from authserver.models.user import User
from authserver.repositories.token_repo import RefreshTokenRepository

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Mints and rotates tokens. Refresh state lives in the refresh_token table."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.token_repo = RefreshTokenRepository(session)

    def issue_access_token(self, user: User, roles: List[str]) -> Tuple[str, int]:
        """Returns (token, expires_in_seconds)."""
        return create_access_token(user_id=str(user.id), email=user.email, roles=roles)

    def _stage_refresh_token(self, user_id: uuid.UUID) -> RefreshToken:
        refresh_token = RefreshToken(
            user_id=user_id,
            token=generate_refresh_token_value(),
            expires_at=utcnow() + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        )
        self.session.add(refresh_token)
        return refresh_token

    async def issue_refresh_token(self, user_id: uuid.UUID) -> str:
        """Persist a new refresh token and return its value."""
        refresh_token = self._stage_refresh_token(user_id)
        await self.session.commit()
        return refresh_token.token

    async def get_active(self, value: str) -> RefreshToken:
        """
        Resolve a presented refresh token.
        Unknown, expired, revoked and rotated tokens all fail the same way.
        """
        stored = await self.token_repo.get_by_token(value) if value else None
        if stored is None:
            raise TokenInvalidError()

        if not stored.is_active:
            if stored.replaced_by_token:
                logger.warning(
                    f"Rotated refresh token presented again for user {stored.user_id} "
                    f"(token id {stored.id})"
                )
            raise TokenInvalidError()
        return stored

    async def rotate(self, stored: RefreshToken, user: User, roles: List[str]) -> dict:
        """
        Revoke an active refresh token and issue a new access/refresh pair.
        The revocation and the new token are committed together.
        """
        replacement = self._stage_refresh_token(user.id)
        stored.revoked_at = utcnow()
        stored.replaced_by_token = replacement.token
        self.session.add(stored)
        await self.session.commit()

        access_token, expires_in = self.issue_access_token(user, roles)
        return {
            "access_token": access_token,
            "token_type": "bearer",
            "expires_in": expires_in,
            "refresh_token": replacement.token
        }

    async def revoke(self, value: str) -> bool:
        """Revoke a refresh token. No-op when it is unknown or already inactive."""
        stored = await self.token_repo.get_by_token(value) if value else None
        if stored is None or not stored.is_active:
            return False

        stored.revoked_at = utcnow()
        self.session.add(stored)
        await self.session.commit()
        return True

    async def revoke_all_for_user(self, user_id: uuid.UUID, commit: bool = True) -> int:
        count = await self.token_repo.revoke_all_for_user(user_id)
        if commit:
            await self.session.commit()
        if count:
            logger.info(f"Revoked {count} refresh token(s) for user {user_id}")
        return count
