"""Tenant-scoped database sessions.

Strategy: pooled connections, tenant bound per transaction. Every transaction
a scoped session begins runs ``set_config('app.current_tenant', <id>, true)``
on the exact connection it was given (SQLAlchemy ``after_begin`` hook), so
the variable is present for every query and reverts at COMMIT/ROLLBACK, which
always happens before the connection is released back to the pool.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy import event
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import Session, SessionTransaction

from src.database.tenant import apply_tenant_scope, read_tenant_scope
from src.exceptions import ScopeAssignmentFailed

logger = logging.getLogger(__name__)


def _scope_binder(tenant_id: str):
    """Build the after_begin listener that binds ``tenant_id`` to each new transaction."""

    def bind(session: Session, transaction: SessionTransaction, connection: Connection) -> None:
        apply_tenant_scope(connection, tenant_id)

    return bind


class TenantConnectionFactory:
    """Hands out AsyncSessions whose every transaction is bound to one tenant."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def scoped(self, tenant_id: uuid.UUID) -> AsyncIterator[AsyncSession]:
        """Open a session bound to ``tenant_id``.

        Commits on clean exit, rolls back on error, and always closes the
        session. Raises ScopeAssignmentFailed, without yielding, if the
        datastore does not accept the tenant binding.
        """
        tenant_value = str(tenant_id)
        session = self._session_factory()
        listener = _scope_binder(tenant_value)
        event.listen(session.sync_session, "after_begin", listener)
        try:
            await self._establish(session, tenant_value)
            try:
                yield session
            except BaseException:
                await session.rollback()
                raise
            else:
                await session.commit()
        finally:
            event.remove(session.sync_session, "after_begin", listener)
            await session.close()

    async def _establish(self, session: AsyncSession, tenant_value: str) -> None:
        try:
            # Starting the transaction fires the after_begin hook.
            await session.connection()
            bound = await read_tenant_scope(session)
        except SQLAlchemyError as exc:
            logger.exception("Tenant scope assignment failed for tenant=%s", tenant_value)
            await session.rollback()
            raise ScopeAssignmentFailed(tenant_value) from exc
        if bound != tenant_value:
            logger.error(
                "Tenant scope mismatch after assignment: expected=%s got=%s", tenant_value, bound
            )
            await session.rollback()
            raise ScopeAssignmentFailed(tenant_value)
