"""Async engine setup for the kv_entries store."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import URL, text
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from src.constants import DB_SCHEMA
from src.store.models import Base

if TYPE_CHECKING:
    from src.config.settings import DatabaseSettings

logger = structlog.get_logger()


def database_url(settings: DatabaseSettings, *, driver: str = "asyncpg") -> URL:
    """Build the PostgreSQL URL; the password is never rendered into logs."""
    return URL.create(
        f"postgresql+{driver}",
        username=settings.user,
        password=settings.password or None,
        host=settings.host,
        port=settings.port,
        database=settings.name,
    )


async def create_db_engine(settings: DatabaseSettings) -> AsyncEngine:
    url = database_url(settings)
    engine = create_async_engine(
        url,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_pre_ping=True,
        connect_args={"server_settings": {"search_path": f"{settings.schema_}, public"}},
    )
    logger.info(
        "db_engine_created",
        url=url.render_as_string(hide_password=True),
        pool_size=settings.pool_size,
    )
    return engine


async def ensure_schema(engine: AsyncEngine, schema: str = DB_SCHEMA) -> None:
    """Create the ledger schema and kv_entries table when missing.

    Alembic owns migrations; this only covers a fresh database so the
    gateway can start without a separate migrate step.
    """
    async with engine.begin() as conn:
        await conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {schema}"))
        await conn.run_sync(Base.metadata.create_all)

    logger.info("db_schema_ensured", schema=schema)


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)
