"""
Upgrade request repository.
"""
import uuid
from typing import Optional, List

from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession

from authserver.models.upgrade_request import UpgradeRequest, UpgradeRequestStatus
from authserver.repositories.base import BaseRepository


class UpgradeRequestRepository(BaseRepository[UpgradeRequest]):
    """Repository for UpgradeRequest operations."""

    def __init__(self, session: AsyncSession):
        super().__init__(UpgradeRequest, session)

    async def get_pending_for_org(self, org_id: uuid.UUID) -> Optional[UpgradeRequest]:
        """The organization's open request, if any."""
        query = select(UpgradeRequest).where(
            UpgradeRequest.organization_id == org_id,
            UpgradeRequest.status == UpgradeRequestStatus.PENDING.value
        )
        result = await self.session.exec(query)
        return result.first()

    async def list_for_org(self, org_id: uuid.UUID) -> List[UpgradeRequest]:
        return await self.list(filters={"organization_id": org_id})

    async def list_by_status(self, status: Optional[str] = None) -> List[UpgradeRequest]:
        return await self.list(filters={"status": status})

    async def count_pending(self) -> int:
        return await self.count({"status": UpgradeRequestStatus.PENDING.value})
