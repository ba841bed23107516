import uuid
from datetime import datetime

from sqlmodel import SQLModel, Field

from authserver.core.clock import utcnow


class NormalUserQuota(SQLModel, table=True):
    """Lifetime CV upload allowance of a DefaultUser (no reset)."""
    __tablename__ = "normal_user_quota"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="user.id", unique=True, index=True, ondelete="CASCADE")

    cv_uploads_used: int = Field(default=0)
    cv_uploads_limit: int = Field(default=2)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
