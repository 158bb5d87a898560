"""Pytest fixtures for database-backed integration tests.

These tests need a disposable PostgreSQL database at DATABASE_URL, reachable
as a superuser (or the schema owner with CREATEROLE). Migrations are applied
once per session. Application queries run as a separate NOLOGIN role without
BYPASSRLS, entered with SET ROLE, so row-level security is actually enforced.
Tests are skipped when the database is unreachable; run without a database
via: pytest -m 'not requires_db'.
"""

import asyncio
import uuid
from collections.abc import AsyncGenerator
from pathlib import Path
from types import SimpleNamespace

import pytest
import pytest_asyncio
from alembic import command
from alembic.config import Config
from sqlalchemy import event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from src.config import Settings, get_settings
from src.database.engine import build_engine, build_session_factory

ROOT = Path(__file__).resolve().parent.parent
APP_ROLE = "salon_app_test"


async def _ping(url: str) -> None:
    engine = create_async_engine(url, poolclass=NullPool)
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    finally:
        await engine.dispose()


async def _ensure_app_role(url: str) -> None:
    engine = create_async_engine(url, poolclass=NullPool)
    statements = [
        f"""
        DO $$ BEGIN
          IF NOT EXISTS (SELECT 1 FROM pg_roles WHERE rolname = '{APP_ROLE}') THEN
            CREATE ROLE {APP_ROLE} NOLOGIN NOSUPERUSER NOBYPASSRLS;
          END IF;
        END $$;
        """,
        f"GRANT {APP_ROLE} TO CURRENT_USER",
        f"GRANT USAGE ON SCHEMA public TO {APP_ROLE}",
        f"GRANT SELECT, INSERT, UPDATE, DELETE ON ALL TABLES IN SCHEMA public TO {APP_ROLE}",
        f"GRANT EXECUTE ON ALL FUNCTIONS IN SCHEMA public TO {APP_ROLE}",
    ]
    try:
        async with engine.begin() as conn:
            for statement in statements:
                await conn.execute(text(statement))
    finally:
        await engine.dispose()


@pytest.fixture(scope="session")
def database_url() -> str:
    """Migrated database URL, or skip the test when PostgreSQL is unreachable."""
    url = get_settings().database_url
    try:
        asyncio.run(_ping(url))
    except (OSError, SQLAlchemyError) as exc:
        pytest.skip(f"PostgreSQL not reachable at DATABASE_URL: {exc}")

    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    command.upgrade(config, "head")
    asyncio.run(_ensure_app_role(url))
    return url


@pytest_asyncio.fixture
async def admin_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(database_url, poolclass=NullPool)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def app_engine(database_url: str) -> AsyncGenerator[AsyncEngine, None]:
    """The application's engine, small pool so connections are reused across tenants."""
    engine = build_engine(Settings(database_url=database_url, db_pool_size=2, db_max_overflow=0))

    @event.listens_for(engine.sync_engine, "connect")
    def _enter_app_role(dbapi_connection, connection_record):
        # Outside any transaction, so a later rollback cannot undo it.
        existing_autocommit = dbapi_connection.autocommit
        dbapi_connection.autocommit = True
        cursor = dbapi_connection.cursor()
        cursor.execute(f"SET SESSION ROLE {APP_ROLE}")
        cursor.close()
        dbapi_connection.autocommit = existing_autocommit

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(app_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return build_session_factory(app_engine)


async def _insert_tenant(conn, name: str, slug: str | None, org_id: str | None, status: str) -> uuid.UUID:
    result = await conn.execute(
        text(
            "INSERT INTO tenants (name, slug, external_org_id, status) "
            "VALUES (:name, :slug, :org_id, CAST(:status AS tenantstatus)) RETURNING id"
        ),
        {"name": name, "slug": slug, "org_id": org_id, "status": status},
    )
    return uuid.UUID(str(result.scalar_one()))


async def _insert_customers(conn, tenant_id: uuid.UUID, names: list[str]) -> None:
    await conn.execute(
        text("SELECT set_config('app.current_tenant', :tenant, true)"), {"tenant": str(tenant_id)}
    )
    for name in names:
        await conn.execute(
            text("INSERT INTO customers (tenant_id, name) VALUES (:tenant_id, :name)"),
            {"tenant_id": tenant_id, "name": name},
        )


async def delete_tenants(admin_engine: AsyncEngine, tenant_ids: list[uuid.UUID]) -> None:
    if not tenant_ids:
        return
    async with admin_engine.begin() as conn:
        for table in ("customers", "staff", "services", "membership"):
            await conn.execute(
                text(f"DELETE FROM {table} WHERE tenant_id = ANY(:ids)"), {"ids": tenant_ids}
            )
        await conn.execute(text("DELETE FROM tenants WHERE id = ANY(:ids)"), {"ids": tenant_ids})


@pytest_asyncio.fixture
async def seeded_tenants(admin_engine: AsyncEngine) -> AsyncGenerator[SimpleNamespace, None]:
    """Two active tenants with customers, plus one suspended tenant."""
    suffix = uuid.uuid4().hex[:8]
    data = SimpleNamespace(
        acme_slug=f"acme-{suffix}",
        acme_org=f"org_acme_{suffix}",
        zen_slug=f"zen-{suffix}",
        beta_slug=f"beta-{suffix}",
    )
    async with admin_engine.begin() as conn:
        data.acme = await _insert_tenant(conn, "Acme Salon", data.acme_slug, data.acme_org, "active")
        data.zen = await _insert_tenant(conn, "Zen Spa", data.zen_slug, f"org_zen_{suffix}", "active")
        data.beta = await _insert_tenant(conn, "Beta Salon", data.beta_slug, None, "suspended")
        await _insert_customers(conn, data.acme, ["Asha", "Ben"])
        await _insert_customers(conn, data.zen, ["Chen"])

    yield data

    await delete_tenants(admin_engine, [data.acme, data.zen, data.beta])


@pytest_asyncio.fixture
async def bootstrapped_users(admin_engine: AsyncEngine) -> AsyncGenerator[list[str], None]:
    """Collects external user ids; their tenants are removed after the test."""
    users: list[str] = []
    yield users
    if not users:
        return
    async with admin_engine.connect() as conn:
        rows = await conn.execute(
            text("SELECT DISTINCT tenant_id FROM membership WHERE external_user_id = ANY(:users)"),
            {"users": users},
        )
        tenant_ids = [uuid.UUID(str(row.tenant_id)) for row in rows]
    await delete_tenants(admin_engine, tenant_ids)
