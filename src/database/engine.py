"""Async engine (connection pool) construction.

The engine is built once at application startup and handed to the components
that need it. Nothing in this module holds a process-wide client.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from src.config import Settings


def build_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.database_url,
        pool_size=settings.db_pool_size,
        pool_pre_ping=True,
        pool_recycle=settings.db_pool_recycle_seconds,
        max_overflow=settings.db_max_overflow,
        # Roll back whatever a connection still holds before it is reused.
        pool_reset_on_return="rollback",
        echo=settings.environment == "development" and settings.log_level == "debug",
    )


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
