"""PostgreSQL-backed durable store (one JSONB row per key)."""

from __future__ import annotations

from typing import Any

import structlog
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlalchemy.sql import func

from src.store.models import KVEntry

logger = structlog.get_logger()


class PostgresStore:
    """DurableStore over the kv_entries table.

    put() is a single upsert committed before returning; an exception from
    the driver propagates so the caller can treat the write as not having
    happened. SQLAlchemy's async session context manager rolls back on error.
    """

    def __init__(self, db_session_factory: async_sessionmaker) -> None:
        self._db: async_sessionmaker = db_session_factory

    async def get(self, key: str) -> Any | None:
        async with self._db() as db_session:
            stmt = select(KVEntry.value).where(KVEntry.key == key)
            result = await db_session.execute(stmt)
            return result.scalar_one_or_none()

    async def put(self, key: str, value: Any) -> None:
        async with self._db() as db_session:
            stmt = pg_insert(KVEntry).values(key=key, value=value)
            stmt = stmt.on_conflict_do_update(
                index_elements=["key"],
                set_={"value": stmt.excluded.value, "updated_at": func.now()},
            )
            await db_session.execute(stmt)
            await db_session.commit()
        logger.debug("kv_entry_upserted", key=key)
