"""Tenant provisioning driven by identity provider events.

``bootstrap_tenant_for_new_user`` gives a new user a tenant and owner
membership. The organization methods keep the directory columns of that
tenant (``external_org_id`` and ``slug``) in step with the provider, which is
what makes the tenant resolvable by the authorization wrapper.
"""

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy import select, text
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.database.tenant import set_tenant_scope
from src.exceptions import TenantNotFoundException
from src.models.enums import MembershipRole, TenantStatus
from src.models.membership import Membership
from src.models.tenant import Tenant
from src.modules.tenancy.auth import normalize_role
from src.modules.tenancy.constants import (
    SYSTEM_OPERATION_BOOTSTRAP,
    SYSTEM_OPERATION_CLOSE_ORGANIZATION,
    SYSTEM_OPERATION_LINK_ORGANIZATION,
    SYSTEM_OPERATION_SYNC_MEMBERSHIP,
)
from src.modules.tenancy.onboarding_service import seed_default_services
from src.modules.tenancy.system import system_session

logger = logging.getLogger(__name__)

# Serializes concurrent deliveries for the same key until the transaction ends.
_ADVISORY_LOCK_SQL = text("SELECT pg_advisory_xact_lock(hashtext(:lock_key))")


@dataclass(frozen=True)
class BootstrapResult:
    tenant_id: uuid.UUID
    created: bool


@dataclass(frozen=True)
class OrganizationSyncResult:
    """Outcome of an organization event.

    ``stale_keys`` are directory keys that no longer resolve to this tenant
    and must be dropped from the directory cache.
    """

    tenant_id: uuid.UUID
    created: bool = False
    stale_keys: tuple[str, ...] = ()


def membership_role(raw: str | None) -> MembershipRole:
    """Map a provider role (``org:admin``, ``basic_member``...) to a MembershipRole."""
    try:
        return MembershipRole(normalize_role(raw or ""))
    except ValueError:
        return MembershipRole.STAFF


class TenantBootstrapService:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        tenant_name: str,
        seed_default_services: bool = True,
    ) -> None:
        self._session_factory = session_factory
        self._tenant_name = tenant_name
        self._seed_default_services = seed_default_services

    async def bootstrap_tenant_for_new_user(self, external_user_id: str) -> BootstrapResult:
        """Ensure ``external_user_id`` owns a tenant.

        Idempotent: a user who already has a membership gets that tenant back
        and nothing is written. Tenant, owner membership and default catalog
        are created in one transaction, so a failure leaves no partial state.
        """
        if not external_user_id:
            raise ValueError("external_user_id is required")

        async with system_session(
            self._session_factory, operation=SYSTEM_OPERATION_BOOTSTRAP
        ) as session:
            await _lock(session, f"bootstrap:{external_user_id}")

            existing = await self._existing_tenant_id(session, external_user_id)
            if existing is not None:
                logger.info(
                    "Bootstrap skipped: user=%s already belongs to tenant=%s",
                    external_user_id,
                    existing,
                )
                return BootstrapResult(tenant_id=existing, created=False)

            tenant_id = await self._create_owned_tenant(
                session, external_user_id, name=self._tenant_name
            )
            logger.info("Bootstrapped tenant=%s for user=%s", tenant_id, external_user_id)
            return BootstrapResult(tenant_id=tenant_id, created=True)

    async def link_organization(
        self,
        external_org_id: str,
        slug: str | None,
        *,
        owner_user_id: str | None = None,
        name: str | None = None,
    ) -> OrganizationSyncResult | None:
        """Attach a provider organization to a tenant, or refresh its slug.

        Resolution order:
          1. the tenant already linked to ``external_org_id`` (slug refreshed);
          2. the oldest unlinked tenant owned by ``owner_user_id``;
          3. a new tenant owned by ``owner_user_id``.

        Returns None when the organization is unknown and no owner is given.
        """
        if not external_org_id:
            raise ValueError("external_org_id is required")
        slug = slug or None

        async with system_session(
            self._session_factory, operation=SYSTEM_OPERATION_LINK_ORGANIZATION
        ) as session:
            # Same key as bootstrap, so a racing user.created cannot add a second tenant.
            if owner_user_id:
                await _lock(session, f"bootstrap:{owner_user_id}")
            await _lock(session, f"organization:{external_org_id}")

            tenant = await self._tenant_for_organization(session, external_org_id)
            if tenant is not None:
                previous_slug = tenant.slug
                if previous_slug == slug:
                    return OrganizationSyncResult(tenant_id=tenant.id)
                tenant.slug = slug
                await session.flush()
                logger.info(
                    "Tenant=%s slug changed from %s to %s", tenant.id, previous_slug, slug
                )
                stale = (previous_slug,) if previous_slug else ()
                return OrganizationSyncResult(tenant_id=tenant.id, stale_keys=stale)

            if not owner_user_id:
                logger.info("Organization=%s has no tenant and no owner; skipped", external_org_id)
                return None

            tenant = await self._unlinked_owned_tenant(session, owner_user_id)
            if tenant is not None:
                tenant.external_org_id = external_org_id
                tenant.slug = slug
                await session.flush()
                logger.info(
                    "Linked organization=%s to tenant=%s for user=%s",
                    external_org_id,
                    tenant.id,
                    owner_user_id,
                )
                return OrganizationSyncResult(tenant_id=tenant.id)

            tenant_id = await self._create_owned_tenant(
                session,
                owner_user_id,
                name=name or self._tenant_name,
                slug=slug,
                external_org_id=external_org_id,
            )
            logger.info(
                "Created tenant=%s for organization=%s owned by user=%s",
                tenant_id,
                external_org_id,
                owner_user_id,
            )
            return OrganizationSyncResult(tenant_id=tenant_id, created=True)

    async def close_organization(self, external_org_id: str) -> OrganizationSyncResult | None:
        """Mark the organization's tenant closed. Its keys stop resolving."""
        if not external_org_id:
            raise ValueError("external_org_id is required")

        async with system_session(
            self._session_factory, operation=SYSTEM_OPERATION_CLOSE_ORGANIZATION
        ) as session:
            tenant = await self._tenant_for_organization(session, external_org_id)
            if tenant is None:
                return None
            tenant.status = TenantStatus.CLOSED
            await session.flush()
            logger.info("Closed tenant=%s for organization=%s", tenant.id, external_org_id)
            keys = tuple(k for k in (tenant.slug, tenant.external_org_id) if k)
            return OrganizationSyncResult(tenant_id=tenant.id, stale_keys=keys)

    async def add_member(
        self, external_org_id: str, external_user_id: str, role: str | None
    ) -> uuid.UUID:
        """Record a provider organization membership on the linked tenant.

        Raises:
            TenantNotFoundException: the organization is not linked yet; the
                provider retries the delivery.
        """
        if not external_org_id or not external_user_id:
            raise ValueError("external_org_id and external_user_id are required")

        async with system_session(
            self._session_factory, operation=SYSTEM_OPERATION_SYNC_MEMBERSHIP
        ) as session:
            tenant = await self._tenant_for_organization(session, external_org_id)
            if tenant is None:
                raise TenantNotFoundException("Organization is not linked to a tenant")
            await session.execute(
                pg_insert(Membership)
                .values(
                    tenant_id=tenant.id,
                    external_user_id=external_user_id,
                    role=membership_role(role),
                )
                .on_conflict_do_nothing(constraint="uq_membership_tenant_user")
            )
            return tenant.id

    async def _create_owned_tenant(
        self,
        session: AsyncSession,
        external_user_id: str,
        *,
        name: str,
        slug: str | None = None,
        external_org_id: str | None = None,
    ) -> uuid.UUID:
        tenant = Tenant(
            name=name,
            slug=slug,
            external_org_id=external_org_id,
            status=TenantStatus.ACTIVE,
        )
        session.add(tenant)
        await session.flush()

        await session.execute(
            pg_insert(Membership)
            .values(
                tenant_id=tenant.id,
                external_user_id=external_user_id,
                role=MembershipRole.OWNER,
            )
            .on_conflict_do_nothing(constraint="uq_membership_tenant_user")
        )

        if self._seed_default_services:
            # Business tables accept rows only under the new tenant's scope.
            await set_tenant_scope(session, str(tenant.id))
            await seed_default_services(session, tenant.id)
        return tenant.id

    @staticmethod
    async def _existing_tenant_id(
        session: AsyncSession, external_user_id: str
    ) -> uuid.UUID | None:
        result = await session.execute(
            select(Membership.tenant_id)
            .where(Membership.external_user_id == external_user_id)
            .order_by(Membership.created_at)
            .limit(1)
        )
        return result.scalars().first()

    @staticmethod
    async def _tenant_for_organization(
        session: AsyncSession, external_org_id: str
    ) -> Tenant | None:
        result = await session.execute(
            select(Tenant).where(Tenant.external_org_id == external_org_id)
        )
        return result.scalars().first()

    @staticmethod
    async def _unlinked_owned_tenant(
        session: AsyncSession, external_user_id: str
    ) -> Tenant | None:
        result = await session.execute(
            select(Tenant)
            .join(Membership, Membership.tenant_id == Tenant.id)
            .where(
                Membership.external_user_id == external_user_id,
                Membership.role == MembershipRole.OWNER,
                Tenant.external_org_id.is_(None),
                Tenant.status == TenantStatus.ACTIVE,
            )
            .order_by(Tenant.created_at)
            .limit(1)
        )
        return result.scalars().first()


async def _lock(session: AsyncSession, key: str) -> None:
    await session.execute(_ADVISORY_LOCK_SQL, {"lock_key": key})
