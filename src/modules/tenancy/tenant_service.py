"""Tenant settings service."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import TenantNotFoundException
from src.models.tenant import Tenant

logger = logging.getLogger(__name__)


class TenantService:
    """Reads and updates the caller's own tenant row.

    ``db`` is a tenant-scoped session, so the tenants RLS policy already
    limits visibility to the bound tenant; the id filter keeps queries explicit.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        result = await self.db.execute(select(Tenant).where(Tenant.id == tenant_id))
        tenant = result.scalar_one_or_none()
        if tenant is None:
            raise TenantNotFoundException("Tenant not found")
        return tenant

    async def rename_tenant(self, tenant_id: uuid.UUID, name: str) -> Tenant:
        tenant = await self.get_tenant(tenant_id)
        tenant.name = name
        await self.db.flush()
        await self.db.refresh(tenant)
        logger.info("Tenant %s renamed", tenant_id)
        return tenant
