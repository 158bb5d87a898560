"""Request-scoped tenancy types."""

import uuid
from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy.ext.asyncio import AsyncSession


@dataclass(frozen=True)
class AuthContext:
    """Verified identity of the caller, normalized from provider claims."""

    user_id: str
    org_id: str | None = None
    org_slug: str | None = None
    roles: frozenset[str] = field(default_factory=frozenset)

    @property
    def tenant_key(self) -> str | None:
        """External key used to find the tenant: slug first, then provider org id."""
        return self.org_slug or self.org_id

    def has_any_role(self, required: Iterable[str]) -> bool:
        return bool(self.roles.intersection(str(getattr(r, "value", r)) for r in required))


@dataclass(frozen=True)
class TenantScope:
    """Everything a tenant-scoped handler receives.

    ``connection`` is bound to ``tenant_id`` for its whole lifetime and must
    not outlive the request that produced it.
    """

    connection: AsyncSession
    tenant_id: uuid.UUID
    tenant_key: str
    user: AuthContext


@dataclass(frozen=True)
class TenantDirectoryEntry:
    id: uuid.UUID
    slug: str | None
    external_org_id: str | None
    status: str
