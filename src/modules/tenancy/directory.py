"""Tenant directory: external tenant key -> internal tenant id."""

import logging
import uuid

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.exceptions import TenantNotFoundException
from src.models.enums import TenantStatus
from src.modules.tenancy.cache import DirectoryCache
from src.modules.tenancy.schemas import TenantDirectoryEntry

logger = logging.getLogger(__name__)

# tenant_directory_lookup() is defined by the RLS migration. It returns the
# minimal directory columns for rows whose slug or provider org id matches,
# without opening the tenants table to the caller.
_LOOKUP_SQL = text(
    "SELECT id, slug, external_org_id, status FROM tenant_directory_lookup(:lookup_key)"
)


def select_active_entry(
    external_key: str, entries: list[TenantDirectoryEntry]
) -> TenantDirectoryEntry | None:
    """Pick the tenant for ``external_key``: slug match first, then provider id.

    Only ``active`` rows are eligible on either path.
    """
    active = [e for e in entries if e.status == TenantStatus.ACTIVE.value]
    for entry in active:
        if entry.slug == external_key:
            return entry
    for entry in active:
        if entry.external_org_id == external_key:
            return entry
    return None


class TenantDirectory:
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: DirectoryCache | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._cache = cache

    async def lookup(self, external_key: str) -> list[TenantDirectoryEntry]:
        async with self._session_factory() as session:
            result = await session.execute(_LOOKUP_SQL, {"lookup_key": external_key})
            return [
                TenantDirectoryEntry(
                    id=uuid.UUID(str(row.id)),
                    slug=row.slug,
                    external_org_id=row.external_org_id,
                    status=str(getattr(row.status, "value", row.status)),
                )
                for row in result
            ]

    async def resolve_internal_tenant_id(self, external_key: str) -> uuid.UUID:
        """Resolve an org slug or provider org id to the internal tenant id.

        Raises:
            TenantNotFoundException: no active tenant matches the key.
        """
        if not external_key:
            raise TenantNotFoundException("Tenant not found")

        if self._cache is not None:
            cached = await self._cache.get(external_key)
            if cached is not None:
                return cached

        entry = select_active_entry(external_key, await self.lookup(external_key))
        if entry is None:
            logger.info("No active tenant for key=%s", external_key)
            raise TenantNotFoundException("Tenant not found")

        if self._cache is not None:
            await self._cache.set(external_key, entry.id)
        return entry.id

    async def forget(self, *external_keys: str) -> None:
        """Drop cached resolutions after a slug change or tenant closure."""
        if self._cache is not None:
            await self._cache.invalidate(*external_keys)
