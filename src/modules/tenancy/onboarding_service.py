"""Onboarding service -- default catalog seeding and first-run salon setup."""

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import TenantNotFoundException
from src.models.enums import ServiceStatus, StaffStatus
from src.models.salon_service import SalonService
from src.models.staff import Staff
from src.models.tenant import Tenant

logger = logging.getLogger(__name__)

OWNER_STAFF_ROLE = "owner"

# (name, price, duration in minutes)
DEFAULT_SERVICES: tuple[tuple[str, Decimal, int], ...] = (
    ("Haircut", Decimal("500"), 60),
    ("Hair Wash", Decimal("200"), 30),
    ("Hair Color", Decimal("1500"), 120),
    ("Facial", Decimal("800"), 90),
    ("Manicure", Decimal("400"), 45),
)


async def seed_default_services(session: AsyncSession, tenant_id: uuid.UUID) -> None:
    """Insert the default service catalog for ``tenant_id``.

    Conflict-safe on (tenant_id, name): re-running never duplicates a service
    or overwrites one the salon has already edited.
    """
    stmt = (
        pg_insert(SalonService)
        .values(
            [
                {
                    "tenant_id": tenant_id,
                    "name": name,
                    "price": price,
                    "duration_minutes": duration,
                    "status": ServiceStatus.ACTIVE,
                }
                for name, price, duration in DEFAULT_SERVICES
            ]
        )
        .on_conflict_do_nothing(constraint="uq_services_tenant_name")
    )
    await session.execute(stmt)


class OnboardingService:
    def __init__(self, db: AsyncSession, placeholder_name: str):
        self.db = db
        self.placeholder_name = placeholder_name

    async def _get_tenant(self, tenant_id: uuid.UUID) -> Tenant:
        result = await self.db.execute(select(Tenant).where(Tenant.id == tenant_id))
        tenant = result.scalar_one_or_none()
        if tenant is None:
            raise TenantNotFoundException("Tenant not found")
        return tenant

    async def get_status(self, tenant_id: uuid.UUID) -> dict:
        tenant = await self._get_tenant(tenant_id)
        staff_count = (
            await self.db.execute(select(func.count()).select_from(Staff))
        ).scalar() or 0
        services_count = (
            await self.db.execute(select(func.count()).select_from(SalonService))
        ).scalar() or 0
        is_onboarded = tenant.name != self.placeholder_name and staff_count > 0
        return {
            "tenant": tenant,
            "staff_count": staff_count,
            "services_count": services_count,
            "is_onboarded": is_onboarded,
        }

    async def complete(
        self,
        tenant_id: uuid.UUID,
        salon_name: str,
        owner_name: str,
        phone: str | None = None,
    ) -> Tenant:
        """Rename the salon, add the owner as first staff member, seed services."""
        tenant = await self._get_tenant(tenant_id)
        tenant.name = salon_name

        existing_owner = await self.db.execute(
            select(Staff.id).where(Staff.role == OWNER_STAFF_ROLE).limit(1)
        )
        if existing_owner.scalar_one_or_none() is None:
            self.db.add(
                Staff(
                    tenant_id=tenant_id,
                    name=owner_name,
                    phone=phone,
                    role=OWNER_STAFF_ROLE,
                    status=StaffStatus.ACTIVE,
                )
            )

        await seed_default_services(self.db, tenant_id)
        await self.db.flush()

        logger.info("Onboarding completed for tenant=%s", tenant_id)
        return tenant
