"""PostgreSQL session variables read by the row-level-security policies.

All values are set with ``set_config(..., is_local => true)`` so they are
scoped to the current transaction and revert on COMMIT or ROLLBACK, before
the connection can be returned to the pool.
"""

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.ext.asyncio import AsyncSession

SESSION_VAR_TENANT_ID = "app.current_tenant"
SESSION_VAR_SYSTEM_BYPASS = "app.system_bypass"

_SET_CONFIG = text("SELECT set_config(:name, :value, true)")
_CURRENT_SETTING = text("SELECT current_setting(:name, true)")


def apply_tenant_scope(connection: Connection, tenant_id: str) -> None:
    """Bind ``tenant_id`` to the transaction running on ``connection``.

    Synchronous form, for use inside SQLAlchemy ``after_begin`` hooks where
    the physical connection of the new transaction is known.
    """
    connection.execute(_SET_CONFIG, {"name": SESSION_VAR_TENANT_ID, "value": tenant_id})
    connection.execute(_SET_CONFIG, {"name": SESSION_VAR_SYSTEM_BYPASS, "value": "false"})


async def set_tenant_scope(session: AsyncSession, tenant_id: str) -> None:
    """Set the tenant variable on the session's current transaction."""
    await session.execute(_SET_CONFIG, {"name": SESSION_VAR_TENANT_ID, "value": tenant_id})
    await session.execute(_SET_CONFIG, {"name": SESSION_VAR_SYSTEM_BYPASS, "value": "false"})


async def set_system_bypass(session: AsyncSession, *, enable: bool = True) -> None:
    """Enable or disable the system RLS bypass for the current transaction."""
    await session.execute(
        _SET_CONFIG,
        {"name": SESSION_VAR_SYSTEM_BYPASS, "value": "true" if enable else "false"},
    )


async def read_tenant_scope(session: AsyncSession) -> str | None:
    """Return the tenant id bound to the current transaction, or None if unset."""
    result = await session.execute(_CURRENT_SETTING, {"name": SESSION_VAR_TENANT_ID})
    return result.scalar() or None
