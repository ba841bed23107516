"""
API dependencies - shared across all routes.
"""
import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Depends, BackgroundTasks
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.database import get_session
from authserver.core.security import decode_access_token
from authserver.core.exceptions import raise_unauthorized, raise_forbidden, OrganizationInactiveError
from authserver.models.user import User, UserStatus, RoleName
from authserver.repositories.organization_repo import OrganizationRepository
from authserver.repositories.user_repo import UserRepository
from authserver.services.notifier import Notifier


bearer_scheme = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """The verified caller of a request."""
    user: User
    roles: List[str] = field(default_factory=list)

    def has_any_role(self, *roles: str) -> bool:
        return any(role in self.roles for role in roles)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_session)
) -> Principal:
    """Verify the bearer token once and resolve the caller."""
    if credentials is None or not credentials.credentials:
        raise_unauthorized("No authorization header")

    payload = decode_access_token(credentials.credentials)
    if not payload:
        raise_unauthorized("Could not validate credentials")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (KeyError, ValueError):
        raise_unauthorized("Could not validate credentials")

    user_repo = UserRepository(session)
    user = await user_repo.get(user_id)
    if not user:
        raise_unauthorized("User not found")

    if user.status != UserStatus.ACTIVE.value:
        raise_unauthorized("User account is not active")

    if user.organization_id:
        org = await OrganizationRepository(session).get(user.organization_id)
        if org is not None and not org.is_active:
            raise OrganizationInactiveError(org.name)

    roles = await user_repo.get_roles(user.id)
    return Principal(user=user, roles=roles)


def require_roles(*roles: RoleName):
    """Dependency factory gating a route on any of the given roles."""
    allowed = tuple(role.value for role in roles)

    async def checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_any_role(*allowed):
            raise_forbidden()
        return principal

    return checker


require_super_admin = require_roles(RoleName.SUPER_ADMIN)
require_org_admin = require_roles(RoleName.ORGANIZATION_ADMIN)
require_org_member = require_roles(RoleName.ORGANIZATION_ADMIN, RoleName.ORGANIZATION_USER)


def get_notifier(background_tasks: BackgroundTasks) -> Notifier:
    """Notifier bound to the request's background tasks."""
    return Notifier(background_tasks)
