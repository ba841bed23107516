"""
Quota schemas.
"""
from typing import Optional
from datetime import datetime
from pydantic import BaseModel


class QuotaCheckResponse(BaseModel):
    """Result of a quota check. limit -1 means unlimited."""
    allowed: bool
    used: int
    limit: int
    scope: str  # individual, organization, unlimited
    reason: Optional[str] = None
    organization_name: Optional[str] = None
    plan_name: Optional[str] = None
    reset_at: Optional[datetime] = None


class QuotaUsageResponse(BaseModel):
    user_type: str
    used: int
    limit: int
    percentage: float
    organization_name: Optional[str] = None
    plan_name: Optional[str] = None
    reset_at: Optional[datetime] = None
