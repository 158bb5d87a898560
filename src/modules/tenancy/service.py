"""Tenant authorization wrapper: the composition point for tenant-scoped work.

Order is fixed: authenticate -> role check -> directory -> scoped connection
-> handler. Each step consumes the previous step's output and no datastore
call happens before authentication and the role check have passed.
"""

import logging
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable
from contextlib import asynccontextmanager
from typing import TypeVar

from fastapi import Request

from src.exceptions import ForbiddenException
from src.models.enums import MembershipRole
from src.modules.tenancy.auth import SessionTokenVerifier, authenticate_request
from src.modules.tenancy.connection import TenantConnectionFactory
from src.modules.tenancy.directory import TenantDirectory
from src.modules.tenancy.schemas import TenantScope

logger = logging.getLogger(__name__)

T = TypeVar("T")

RoleSet = Iterable[MembershipRole | str]


class TenantAuthorizer:
    """Stateless across requests: holds only its collaborators."""

    def __init__(
        self,
        verifier: SessionTokenVerifier,
        directory: TenantDirectory,
        connections: TenantConnectionFactory,
    ) -> None:
        self._verifier = verifier
        self._directory = directory
        self._connections = connections

    @asynccontextmanager
    async def authorize(
        self, request: Request, required_roles: RoleSet | None = None
    ) -> AsyncIterator[TenantScope]:
        user = await authenticate_request(request, self._verifier)

        if required_roles:
            required = [str(getattr(r, "value", r)) for r in required_roles]
            if not user.has_any_role(required):
                logger.info(
                    "Role check failed for user=%s roles=%s required=%s",
                    user.user_id,
                    sorted(user.roles),
                    required,
                )
                raise ForbiddenException(f"Requires one of roles: {', '.join(required)}")

        tenant_key = user.tenant_key
        tenant_id = await self._directory.resolve_internal_tenant_id(tenant_key)

        async with self._connections.scoped(tenant_id) as connection:
            yield TenantScope(
                connection=connection,
                tenant_id=tenant_id,
                tenant_key=tenant_key,
                user=user,
            )

    async def run(
        self,
        request: Request,
        handler: Callable[[TenantScope], Awaitable[T]],
        required_roles: RoleSet | None = None,
    ) -> T:
        async with self.authorize(request, required_roles) as scope:
            return await handler(scope)


async def with_tenant_auth(
    request: Request,
    handler: Callable[[TenantScope], Awaitable[T]],
    required_roles: RoleSet | None = None,
) -> T:
    """Run ``handler`` with a TenantScope for the caller of ``request``.

    The handler's return value and exceptions propagate unchanged. The scoped
    connection is committed after the handler returns and rolled back if it
    raises.
    """
    authorizer: TenantAuthorizer = request.app.state.tenant_authorizer
    return await authorizer.run(request, handler, required_roles)
