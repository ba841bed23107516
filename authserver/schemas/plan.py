"""
Subscription plan schemas.
"""
import uuid
from decimal import Decimal
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, Field

from authserver.models.organization import SubscriptionPlan


class CreatePlanRequest(BaseModel):
    """Create a subscription plan. The name is normalized to a slug."""
    name: str = Field(..., min_length=1, max_length=100)
    display_name: str = Field(..., min_length=1, max_length=200)
    max_users: int = Field(..., ge=1)
    max_cv_uploads: int = Field(..., ge=0)
    features: List[str] = []
    monthly_price: Optional[Decimal] = Field(None, ge=0)
    display_order: int = 0
    is_popular: bool = False
    is_active: bool = True

    class Config:
        json_schema_extra = {
            "example": {
                "name": "team",
                "display_name": "Team",
                "max_users": 10,
                "max_cv_uploads": 100,
                "features": ["Priority support"],
                "monthly_price": 49.0,
                "display_order": 2
            }
        }


class UpdatePlanRequest(BaseModel):
    """Partial plan update."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    display_name: Optional[str] = Field(None, min_length=1, max_length=200)
    max_users: Optional[int] = Field(None, ge=1)
    max_cv_uploads: Optional[int] = Field(None, ge=0)
    features: Optional[List[str]] = None
    monthly_price: Optional[Decimal] = Field(None, ge=0)
    display_order: Optional[int] = None
    is_popular: Optional[bool] = None
    is_active: Optional[bool] = None


class PlanResponse(BaseModel):
    id: uuid.UUID
    name: str
    display_name: str
    max_users: int
    max_cv_uploads: int
    features: List[str]
    monthly_price: Optional[float] = None
    display_order: int
    is_popular: bool
    is_active: bool
    organizations_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan, organizations_count: Optional[int] = None) -> "PlanResponse":
        return cls(
            id=plan.id,
            name=plan.name,
            display_name=plan.display_name,
            max_users=plan.max_users,
            max_cv_uploads=plan.max_cv_uploads,
            features=plan.features,
            monthly_price=float(plan.monthly_price) if plan.monthly_price is not None else None,
            display_order=plan.display_order,
            is_popular=plan.is_popular,
            is_active=plan.is_active,
            organizations_count=organizations_count,
            created_at=plan.created_at,
            updated_at=plan.updated_at,
        )


class CanDeleteResponse(BaseModel):
    can_delete: bool
    organizations_count: int
    reason: Optional[str] = None
