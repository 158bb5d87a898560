"""Membership queries for the current tenant."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.membership import Membership

logger = logging.getLogger(__name__)


class MembershipService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_members(self) -> list[Membership]:
        """All memberships visible through the scoped session, oldest first."""
        result = await self.db.execute(
            select(Membership).order_by(Membership.created_at, Membership.id)
        )
        return list(result.scalars().all())
