"""
Refresh token repository.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.core.clock import utcnow
from authserver.models.token import RefreshToken
from authserver.repositories.base import BaseRepository


class RefreshTokenRepository(BaseRepository[RefreshToken]):
    """Repository for RefreshToken operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(RefreshToken, session)

    async def get_by_token(self, token: str) -> Optional[RefreshToken]:
        """Get refresh token by token string."""
        query = select(RefreshToken).where(RefreshToken.token == token)
        result = await self.session.exec(query)
        return result.first()

    async def list_active_for_user(self, user_id: uuid.UUID) -> List[RefreshToken]:
        query = select(RefreshToken).where(
            RefreshToken.user_id == user_id,
            RefreshToken.revoked_at.is_(None),
            RefreshToken.expires_at > utcnow()
        )
        result = await self.session.exec(query)
        return list(result.all())

    async def revoke_all_for_user(self, user_id: uuid.UUID) -> int:
        """Stage revocation of all active tokens for a user. Caller commits."""
        tokens = await self.list_active_for_user(user_id)
        now = utcnow()
        for token in tokens:
            token.revoked_at = now
            self.session.add(token)
        return len(tokens)
