"""
Organization and subscription plan models.
"""
import json
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, List

from sqlmodel import SQLModel, Field

from authserver.core.clock import utcnow, add_months


class SubscriptionPlan(SQLModel, table=True):
    """
    Subscription plan defining member and CV upload limits.
    A plan cannot be deleted while an organization references it.
    """
    __tablename__ = "subscription_plan"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, index=True)  # starter, professional, enterprise
    display_name: str

    # Limits
    max_users: int
    max_cv_uploads: int

    # Features (serialized JSON list of strings)
    features_json: str = Field(default="[]")

    # Pricing & display
    monthly_price: Optional[Decimal] = Field(default=None, max_digits=10, decimal_places=2)
    display_order: int = Field(default=0)
    is_popular: bool = Field(default=False)
    is_active: bool = Field(default=True)

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def features(self) -> List[str]:
        try:
            parsed = json.loads(self.features_json or "[]")
        except ValueError:
            return []
        return [str(item) for item in parsed] if isinstance(parsed, list) else []

    def set_features(self, value: List[str]) -> None:
        self.features_json = json.dumps(list(value or []))


class Organization(SQLModel, table=True):
    """
    Organization/Tenant model.
    Created only when a SuperAdmin approves a pending OrganizationAdmin.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    slug: str = Field(unique=True, index=True)

    # Owner is immutable after creation
    owner_id: uuid.UUID = Field(foreign_key="user.id", index=True, ondelete="RESTRICT")

    # Subscription
    subscription_plan_id: uuid.UUID = Field(foreign_key="subscription_plan.id", index=True)

    # Usage tracking (lazy monthly window)
    cv_uploads_this_month: int = Field(default=0)
    cv_uploads_reset_at: datetime = Field(default_factory=lambda: add_months(utcnow(), 1))

    # Status
    is_active: bool = Field(default=True)
    deactivated_at: Optional[datetime] = None
    deactivation_reason: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
