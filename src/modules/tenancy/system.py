"""System entry point: database work that must run before any tenant exists.

This is the one path that operates without a tenant scope. It is not wired
into the request authorization flow or any dependency. Its only callers are
the provisioning methods in bootstrap.py, and the operation name is checked
against an allow-list.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.database.tenant import set_system_bypass
from src.modules.tenancy.constants import SYSTEM_OPERATIONS

logger = logging.getLogger(__name__)


@asynccontextmanager
async def system_session(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    operation: str,
) -> AsyncIterator[AsyncSession]:
    """Run one transaction with the system RLS bypass enabled.

    The bypass is transaction-local: it is switched off explicitly on success
    and discarded by the rollback on failure.
    """
    if operation not in SYSTEM_OPERATIONS:
        raise ValueError(f"Unknown system operation: {operation}")

    async with session_factory() as session:
        async with session.begin():
            await set_system_bypass(session, enable=True)
            logger.info("System bypass enabled for operation=%s", operation)
            yield session
            await set_system_bypass(session, enable=False)
