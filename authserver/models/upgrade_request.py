"""
Upgrade request model - an organization's ask to move to another plan.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import SQLModel, Field

from authserver.core.clock import utcnow


class UpgradeRequestStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    CANCELLED = "Cancelled"


class UpgradeRequest(SQLModel, table=True):
    """
    Pending until a SuperAdmin approves/rejects it or the OrgAdmin cancels it.
    All non-pending states are terminal.
    """
    __tablename__ = "upgrade_request"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    organization_id: uuid.UUID = Field(foreign_key="organization.id", index=True, ondelete="CASCADE")

    # Plan snapshot at request time and the plan asked for
    current_plan_id: uuid.UUID = Field(foreign_key="subscription_plan.id")
    requested_plan_id: uuid.UUID = Field(foreign_key="subscription_plan.id")

    requested_by_id: uuid.UUID = Field(foreign_key="user.id")
    reason: str = Field(default="")
    status: str = Field(default=UpgradeRequestStatus.PENDING.value, index=True)

    # Resolution, set once
    processed_by_id: Optional[uuid.UUID] = Field(default=None, foreign_key="user.id")
    processed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
