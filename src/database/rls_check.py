"""Readiness check for row-level security.

RLS is the isolation boundary; an application role holding BYPASSRLS (or
superuser) would see every tenant's rows regardless of the session variable.
Returns a result object and never raises, the caller decides the response.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)

TENANT_SCOPED_TABLES = ("tenants", "membership", "customers", "staff", "services")


@dataclass
class RLSCheckResult:
    ok: bool
    message: str


async def run_rls_check(engine: AsyncEngine) -> RLSCheckResult:
    try:
        async with engine.connect() as conn:
            role = (
                await conn.execute(
                    text(
                        "SELECT rolname, rolbypassrls, rolsuper FROM pg_roles "
                        "WHERE rolname = current_user"
                    )
                )
            ).one_or_none()
            if role is None:
                return RLSCheckResult(ok=False, message="Current database role not found")
            if role.rolbypassrls or role.rolsuper:
                return RLSCheckResult(
                    ok=False,
                    message=f"Application role '{role.rolname}' bypasses row-level security",
                )

            rows = await conn.execute(
                text(
                    "SELECT relname FROM pg_class "
                    "WHERE relname = ANY(:tables) AND relkind = 'r' AND relrowsecurity"
                ),
                {"tables": list(TENANT_SCOPED_TABLES)},
            )
            protected = {row.relname for row in rows}
    except SQLAlchemyError as exc:
        logger.warning("RLS readiness check could not reach the database: %s", exc)
        return RLSCheckResult(ok=False, message="Database unreachable")

    missing = sorted(set(TENANT_SCOPED_TABLES) - protected)
    if missing:
        return RLSCheckResult(
            ok=False, message=f"Row-level security disabled on: {', '.join(missing)}"
        )
    return RLSCheckResult(ok=True, message="ok")
