"""
User and account schemas.
"""
import uuid
from typing import Optional, List
from datetime import datetime
from pydantic import BaseModel, EmailStr, Field

from authserver.models.user import User, UserStatus, primary_role


class UserSummary(BaseModel):
    """User details returned by login, /me and admin listings."""
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    full_name: str = ""
    status: Optional[str] = None
    role: Optional[str] = None  # Primary role
    roles: List[str] = []
    organization_id: Optional[uuid.UUID] = None
    must_change_password: bool = False
    requested_org_name: Optional[str] = None
    created_at: datetime
    last_login_at: Optional[datetime] = None
    deactivated_at: Optional[datetime] = None
    deactivation_reason: Optional[str] = None

    @classmethod
    def from_user(cls, user: User, roles: List[str]) -> "UserSummary":
        role = primary_role(roles)
        return cls(
            id=user.id,
            email=user.email,
            first_name=user.first_name,
            last_name=user.last_name,
            full_name=user.full_name,
            status=user.status,
            role=role.value if role else None,
            roles=sorted(roles),
            organization_id=user.organization_id,
            must_change_password=user.must_change_password,
            requested_org_name=user.requested_org_name,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
            deactivated_at=user.deactivated_at,
            deactivation_reason=user.deactivation_reason,
        )


class AccountInfoResponse(BaseModel):
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: Optional[str] = None


class ChangeUserStatusRequest(BaseModel):
    """SuperAdmin status change by email."""
    email: EmailStr
    status: UserStatus


class DeactivateRequest(BaseModel):
    """Deactivation of a user or an organization."""
    reason: Optional[str] = Field(None, max_length=500)
