"""
Upgrade request schemas.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, Field

from authserver.schemas.plan import PlanResponse


class SubmitUpgradeRequest(BaseModel):
    requested_plan_id: uuid.UUID
    reason: Optional[str] = Field(None, max_length=1000)


class RejectUpgradeRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=1000)


class UpgradeRequestResponse(BaseModel):
    """Upgrade request with plan and organization labels resolved."""
    id: uuid.UUID
    organization_id: uuid.UUID
    organization_name: Optional[str] = None
    current_plan_id: uuid.UUID
    current_plan_name: Optional[str] = None
    requested_plan_id: uuid.UUID
    requested_plan_name: Optional[str] = None
    requested_by_id: uuid.UUID
    requested_by_email: Optional[str] = None
    reason: str
    status: str
    processed_by_id: Optional[uuid.UUID] = None
    processed_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: datetime


class AvailablePlanResponse(PlanResponse):
    is_upgrade: bool
