"""
Organization schemas for API requests/responses.
"""
import uuid
from typing import Optional
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from authserver.models.organization import Organization, SubscriptionPlan
from authserver.schemas.plan import PlanResponse


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class ApproveOrgAdminRequest(BaseModel):
    """SuperAdmin approval of a pending OrganizationAdmin."""
    user_id: uuid.UUID
    organization_name: Optional[str] = Field(None, max_length=200)  # Defaults to the requested name


class RejectOrgAdminRequest(BaseModel):
    user_id: uuid.UUID
    reason: Optional[str] = Field(None, max_length=500)


class InviteMemberRequest(BaseModel):
    """Request to invite a user to the caller's organization."""
    email: EmailStr
    first_name: Optional[str] = Field(None, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)


class ChangePlanRequest(BaseModel):
    """Admin-initiated plan change."""
    plan_id: uuid.UUID
    reason: Optional[str] = Field(None, max_length=500)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class OrganizationResponse(BaseModel):
    """Organization details response."""
    id: uuid.UUID
    name: str
    slug: str
    owner_id: uuid.UUID
    subscription_plan_id: uuid.UUID
    plan: Optional[PlanResponse] = None
    is_active: bool
    cv_uploads_this_month: int
    cv_uploads_reset_at: datetime
    deactivated_at: Optional[datetime] = None
    deactivation_reason: Optional[str] = None
    member_count: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def build(
        cls,
        org: Organization,
        plan: Optional[SubscriptionPlan] = None,
        member_count: Optional[int] = None
    ) -> "OrganizationResponse":
        return cls(
            id=org.id,
            name=org.name,
            slug=org.slug,
            owner_id=org.owner_id,
            subscription_plan_id=org.subscription_plan_id,
            plan=PlanResponse.from_plan(plan) if plan else None,
            is_active=org.is_active,
            cv_uploads_this_month=org.cv_uploads_this_month,
            cv_uploads_reset_at=org.cv_uploads_reset_at,
            deactivated_at=org.deactivated_at,
            deactivation_reason=org.deactivation_reason,
            member_count=member_count,
            created_at=org.created_at,
            updated_at=org.updated_at,
        )


class OrganizationStatsResponse(BaseModel):
    member_count: int
    max_users: int
    cv_uploads_this_month: int
    cv_upload_limit: int
    cv_uploads_reset_at: datetime
    plan_name: str
