"""
User and Role repositories.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy import func

from authserver.core.clock import utcnow
from authserver.models.user import User, Role, UserRoleLink, UserStatus, RoleName
from authserver.repositories.base import BaseRepository


class UserRepository(BaseRepository[User]):
    """Repository for User operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(User, session)

    async def get_by_email(self, email: str) -> Optional[User]:
        """Get user by email (case-insensitive)."""
        query = select(User).where(func.lower(User.email) == email.strip().lower())
        result = await self.session.exec(query)
        return result.first()

    async def get_roles(self, user_id: uuid.UUID) -> List[str]:
        """Role names assigned to a user."""
        query = (
            select(Role.name)
            .join(UserRoleLink, UserRoleLink.role_id == Role.id)
            .where(UserRoleLink.user_id == user_id)
        )
        result = await self.session.exec(query)
        return list(result.all())

    async def add_role(self, user_id: uuid.UUID, role_name: str) -> None:
        """Stage a role assignment. Caller commits."""
        role = await RoleRepository(self.session).get_or_create(role_name)
        existing = await self.session.get(UserRoleLink, (user_id, role.id))
        if existing is None:
            self.session.add(UserRoleLink(user_id=user_id, role_id=role.id))

    async def remove_roles(self, user_id: uuid.UUID) -> None:
        """Stage removal of every role of a user. Caller commits."""
        query = select(UserRoleLink).where(UserRoleLink.user_id == user_id)
        result = await self.session.exec(query)
        for link in result.all():
            await self.session.delete(link)

    async def list_in_role(self, role_name: str) -> List[User]:
        """Users holding a role."""
        query = (
            select(User)
            .join(UserRoleLink, UserRoleLink.user_id == User.id)
            .join(Role, Role.id == UserRoleLink.role_id)
            .where(Role.name == role_name)
            .order_by(User.created_at)
        )
        result = await self.session.exec(query)
        return list(result.all())

    async def list_pending_in_role(self, role_name: str) -> List[User]:
        query = (
            select(User)
            .join(UserRoleLink, UserRoleLink.user_id == User.id)
            .join(Role, Role.id == UserRoleLink.role_id)
            .where(Role.name == role_name, User.status == UserStatus.PENDING.value)
            .order_by(User.created_at)
        )
        result = await self.session.exec(query)
        return list(result.all())

    async def list_members(self, org_id: uuid.UUID) -> List[User]:
        """All users linked to an organization, any status."""
        query = select(User).where(User.organization_id == org_id).order_by(User.created_at)
        result = await self.session.exec(query)
        return list(result.all())

    async def count_active_members(self, org_id: uuid.UUID) -> int:
        query = select(func.count()).select_from(User).where(
            User.organization_id == org_id,
            User.status == UserStatus.ACTIVE.value
        )
        result = await self.session.exec(query)
        return result.one()

    async def count_active_admins(self, org_id: uuid.UUID) -> int:
        """Active OrganizationAdmins of an organization."""
        query = (
            select(func.count())
            .select_from(User)
            .join(UserRoleLink, UserRoleLink.user_id == User.id)
            .join(Role, Role.id == UserRoleLink.role_id)
            .where(
                User.organization_id == org_id,
                User.status == UserStatus.ACTIVE.value,
                Role.name == RoleName.ORGANIZATION_ADMIN.value
            )
        )
        result = await self.session.exec(query)
        return result.one()

    async def update_last_login(self, user: User) -> None:
        """Update user's last login timestamp."""
        user.last_login_at = utcnow()
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)


class RoleRepository(BaseRepository[Role]):
    """Repository for Role operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(Role, session)

    async def get_by_name(self, name: str) -> Optional[Role]:
        return await self.get_by_field("name", name)

    async def get_or_create(self, name: str) -> Role:
        """Fetch a role, staging it when missing."""
        role = await self.get_by_name(name)
        if role is None:
            role = Role(name=name)
            self.session.add(role)
            await self.session.flush()
        return role
