"""
Credential store - the identity capability consumed by the auth services.
Hashing is delegated to bcrypt through core.security.
"""
import uuid
from abc import ABC, abstractmethod
from typing import Optional, List

from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.core.clock import utcnow
from authserver.core.exceptions import ValidationError, raise_already_exists
from authserver.core.security import get_password_hash, verify_password, password_policy_errors
from authserver.models.user import User
from authserver.repositories.user_repo import UserRepository


class CredentialStore(ABC):
    """Identity store interface."""

    @abstractmethod
    async def create_user(self, email: str, password: str, **fields) -> User:
        """Create a user. Staged only; the caller commits."""

    @abstractmethod
    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        pass

    @abstractmethod
    async def find_by_email(self, email: str) -> Optional[User]:
        pass

    @abstractmethod
    async def verify_password(self, user: User, password: str) -> bool:
        pass

    @abstractmethod
    async def set_password(self, user: User, password: str) -> None:
        """Validate and hash a new password. Staged only."""

    @abstractmethod
    async def update(self, user: User) -> User:
        """Persist changes to a user."""

    @abstractmethod
    async def assign_role(self, user: User, role: str, exclusive: bool = False) -> None:
        """Stage a role assignment; exclusive drops any other role first."""

    @abstractmethod
    async def get_roles(self, user: User) -> List[str]:
        pass

    @abstractmethod
    async def users_in_role(self, role: str) -> List[User]:
        pass


def check_password_policy(password: str, field: str = "password") -> None:
    """Raise a 400 validation error listing every policy violation."""
    errors = password_policy_errors(password)
    if errors:
        error = ValidationError(errors[0], field)
        error.extra["details"] = [{"field": field, "message": message} for message in errors]
        raise error


class SQLCredentialStore(CredentialStore):
    """Credential store backed by the relational repositories."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)

    async def create_user(self, email: str, password: str, **fields) -> User:
        email = email.strip().lower()
        if await self.user_repo.get_by_email(email):
            raise_already_exists("User", "email", email)
        check_password_policy(password)

        user = User(email=email, password_hash=get_password_hash(password), **fields)
        self.session.add(user)
        await self.session.flush()
        return user

    async def find_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        return await self.user_repo.get(user_id)

    async def find_by_email(self, email: str) -> Optional[User]:
        return await self.user_repo.get_by_email(email)

    async def verify_password(self, user: User, password: str) -> bool:
        return verify_password(password, user.password_hash)

    async def set_password(self, user: User, password: str, field: str = "new_password") -> None:
        check_password_policy(password, field)
        user.password_hash = get_password_hash(password)
        user.updated_at = utcnow()
        self.session.add(user)

    async def update(self, user: User) -> User:
        return await self.user_repo.save(user)

    async def assign_role(self, user: User, role: str, exclusive: bool = False) -> None:
        if exclusive:
            await self.user_repo.remove_roles(user.id)
            await self.session.flush()
        await self.user_repo.add_role(user.id, role)

    async def get_roles(self, user: User) -> List[str]:
        return await self.user_repo.get_roles(user.id)

    async def users_in_role(self, role: str) -> List[User]:
        return await self.user_repo.list_in_role(role)
