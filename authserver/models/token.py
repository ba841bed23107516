"""
Refresh token model.
Opaque values stored in DB; each rotation revokes its predecessor.
"""
import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import SQLModel, Field

from authserver.core.clock import utcnow


class RefreshToken(SQLModel, table=True):
    """
    Refresh token for obtaining new access tokens.
    Stored in DB for revocation support.
    """
    __tablename__ = "refresh_token"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", index=True, ondelete="CASCADE")

    token: str = Field(unique=True, index=True)  # The actual token string

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime

    # Status
    revoked_at: Optional[datetime] = None
    replaced_by_token: Optional[str] = None  # Forward link set on rotation

    @property
    def is_expired(self) -> bool:
        return utcnow() >= self.expires_at

    @property
    def is_revoked(self) -> bool:
        return self.revoked_at is not None

    @property
    def is_active(self) -> bool:
        return not self.is_revoked and not self.is_expired
