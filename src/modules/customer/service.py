"""Customer service -- reads and writes through a tenant-scoped session only."""

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.customer import Customer

logger = logging.getLogger(__name__)


class CustomerService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_customers(self, limit: int = 50, offset: int = 0) -> tuple[list[Customer], int]:
        # No tenant filter: row-level security on the scoped session does it.
        total = (await self.db.execute(select(func.count()).select_from(Customer))).scalar() or 0
        result = await self.db.execute(
            select(Customer).order_by(Customer.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all()), total

    async def create_customer(
        self,
        tenant_id: uuid.UUID,
        name: str,
        phone: str | None = None,
        email: str | None = None,
    ) -> Customer:
        customer = Customer(tenant_id=tenant_id, name=name, phone=phone, email=email)
        self.db.add(customer)
        await self.db.flush()
        await self.db.refresh(customer)
        logger.info("Created customer %s for tenant %s", customer.id, tenant_id)
        return customer
