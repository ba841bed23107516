"""
User, role and status models.
Roles are a many-to-many assignment; business logic works with one primary role.
"""
import uuid
from datetime import datetime
from enum import Enum
from typing import Optional, Iterable

from sqlmodel import SQLModel, Field

from authserver.core.clock import utcnow


class UserStatus(str, Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class RoleName(str, Enum):
    SUPER_ADMIN = "SuperAdmin"
    ORGANIZATION_ADMIN = "OrganizationAdmin"
    ORGANIZATION_USER = "OrganizationUser"
    DEFAULT_USER = "DefaultUser"


# Highest privilege first
ROLE_PRECEDENCE = (
    RoleName.SUPER_ADMIN,
    RoleName.ORGANIZATION_ADMIN,
    RoleName.ORGANIZATION_USER,
    RoleName.DEFAULT_USER,
)

_ALLOWED_STATUS_CHANGES = {
    None: {UserStatus.ACTIVE, UserStatus.INACTIVE},
    UserStatus.PENDING: {UserStatus.ACTIVE, UserStatus.INACTIVE},
    UserStatus.ACTIVE: {UserStatus.INACTIVE},
    UserStatus.INACTIVE: set(),
}


def is_valid_status_change(current: Optional[str], new: str) -> bool:
    """Admin-driven status transitions. Inactive is terminal."""
    current_status = UserStatus(current) if current is not None else None
    return UserStatus(new) in _ALLOWED_STATUS_CHANGES[current_status]


def primary_role(roles: Iterable[str]) -> Optional[RoleName]:
    """Pick the highest-precedence role from a role assignment."""
    assigned = set(roles)
    for role in ROLE_PRECEDENCE:
        if role.value in assigned:
            return role
    return None


class User(SQLModel, table=True):
    """
    User model with authentication and profile info.
    Password hash is owned by the credential store.
    """
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)

    # Auth
    email: str = Field(unique=True, index=True)
    password_hash: str
    must_change_password: bool = Field(default=False)

    # Profile
    first_name: Optional[str] = None
    last_name: Optional[str] = None

    # Lifecycle
    status: Optional[str] = Field(default=UserStatus.ACTIVE.value, index=True)  # Pending, Active, Inactive
    requested_org_name: Optional[str] = None  # Only while awaiting org-admin approval

    # Organization membership (weak reference)
    organization_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="organization.id", index=True, ondelete="SET NULL"
    )

    # Deactivation metadata
    deactivated_at: Optional[datetime] = None
    deactivation_reason: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    last_login_at: Optional[datetime] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()


class Role(SQLModel, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(unique=True, index=True)


class UserRoleLink(SQLModel, table=True):
    """Junction table for the User-Role assignment."""
    __tablename__ = "user_role"

    user_id: uuid.UUID = Field(foreign_key="user.id", primary_key=True, ondelete="CASCADE")
    role_id: uuid.UUID = Field(foreign_key="role.id", primary_key=True, ondelete="CASCADE")
