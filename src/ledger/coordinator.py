"""Lifecycle state coordinator: single-writer owner of one kind's record set.

Every operation runs inside one per-instance asyncio.Lock, so the
hydrate → mutate → persist → swap sequence of one call never interleaves
with another call on the same coordinator. asyncio.Lock wakes waiters in
FIFO order, which gives arrival-order processing.

Mutations are copy-on-write: the next record set is built as a new dict,
written to the durable store, and only swapped in after the store
acknowledges. A failed write leaves the live set untouched.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import replace
from datetime import UTC, datetime
from typing import Any, Generic, TypeVar

import structlog

from src.infra.errors import (
    AlreadyCompletedError,
    InvalidPayloadError,
    NotFoundError,
    PersistenceError,
)
from src.ledger.kinds import EntityKind
from src.ledger.models import P, R, Record, RecordStatus
from src.store.base import DurableStore

logger = structlog.get_logger()

T = TypeVar("T")

_MAX_ID_ATTEMPTS = 8


class LifecycleCoordinator(Generic[P, R]):
    """Owns the record set for one entity kind and serializes all access to it."""

    def __init__(
        self,
        kind: EntityKind[P, R],
        store: DurableStore,
        *,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self._kind = kind
        self._store = store
        self._clock = clock or (lambda: datetime.now(UTC))
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._records: dict[str, Record[P, R]] = {}
        # Stored entries that failed to parse; written back untouched on every commit.
        self._unparsed: dict[str, Any] = {}
        self._hydrated = False
        self._lock = asyncio.Lock()

    @property
    def kind(self) -> EntityKind[P, R]:
        return self._kind

    @property
    def hydrated(self) -> bool:
        return self._hydrated

    # ── public operations ──

    async def hydrate(self) -> int:
        """Load the record set from the store if not yet loaded. Returns record count."""

        async def _op() -> int:
            return len(self._records)

        return await self._serialized(_op)

    async def start(self, payload: Mapping[str, Any] | P) -> str:
        """Create a running record and return its id.

        Payload is validated before the record set is touched.
        """
        parsed = self._kind.parse_payload(payload)

        async def _op() -> str:
            record_id = self._new_id()
            record: Record[P, R] = Record(
                id=record_id, payload=parsed, start_time=self._clock()
            )
            await self._commit({**self._records, record_id: record})
            logger.info(
                "record_started",
                kind=self._kind.name,
                record_id=record_id,
                total=len(self._records),
            )
            return record_id

        return await self._serialized(_op)

    async def complete(
        self,
        record_id: str,
        success: bool,
        result: Mapping[str, Any] | R | None = None,
    ) -> Record[P, R]:
        """Move a running record to success/failed and store its result.

        Raises NotFoundError for an unknown id and AlreadyCompletedError when
        the record has already been completed. Neither changes the record set.
        """
        if not isinstance(success, bool):
            raise InvalidPayloadError(f"success must be a boolean (got {type(success).__name__})")
        parsed = self._kind.parse_result(result)

        async def _op() -> Record[P, R]:
            current = self._records.get(record_id)
            if current is None:
                logger.info("record_not_found", kind=self._kind.name, record_id=record_id)
                raise NotFoundError(record_id, kind=self._kind.name)
            if not current.is_running:
                logger.warning(
                    "record_already_completed",
                    kind=self._kind.name,
                    record_id=record_id,
                    status=current.status.value,
                )
                raise AlreadyCompletedError(record_id, current.status.value)

            # endTime never precedes startTime, even with a skewed clock
            end_time = max(self._clock(), current.start_time)
            updated = replace(
                current,
                status=RecordStatus.success if success else RecordStatus.failed,
                result=parsed,
                end_time=end_time,
            )
            await self._commit({**self._records, record_id: updated})
            logger.info(
                "record_completed",
                kind=self._kind.name,
                record_id=record_id,
                status=updated.status.value,
            )
            return updated.snapshot()

        return await self._serialized(_op)

    async def get(self, record_id: str) -> Record[P, R]:
        """Return a copy of one record. Raises NotFoundError."""

        async def _op() -> Record[P, R]:
            record = self._records.get(record_id)
            if record is None:
                raise NotFoundError(record_id, kind=self._kind.name)
            return record.snapshot()

        return await self._serialized(_op)

    async def list(self) -> dict[str, Record[P, R]]:
        """Return a copy of the full record set."""

        async def _op() -> dict[str, Record[P, R]]:
            return {rid: record.snapshot() for rid, record in self._records.items()}

        return await self._serialized(_op)

    # ── internals ──

    async def _serialized(self, op: Callable[[], Awaitable[T]]) -> T:
        """Run op under the lock in its own task.

        The task is shielded: a caller that goes away does not abort a
        mutation half-way through its persist step.
        """
        task = asyncio.ensure_future(self._run_locked(op))
        task.add_done_callback(self._retrieve_outcome)
        return await asyncio.shield(task)

    async def _run_locked(self, op: Callable[[], Awaitable[T]]) -> T:
        async with self._lock:
            await self._ensure_hydrated()
            return await op()

    def _retrieve_outcome(self, task: asyncio.Task) -> None:
        # Retrieve the exception so a task whose caller went away does not warn at GC time.
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None and not isinstance(exc, NotFoundError):
            logger.debug(
                "coordinator_op_failed",
                kind=self._kind.name,
                error_type=type(exc).__name__,
            )

    async def _ensure_hydrated(self) -> None:
        if self._hydrated:
            return

        key = self._kind.store_key
        try:
            raw = await self._store.get(key)
        except Exception as e:
            logger.exception("record_set_hydrate_failed", kind=self._kind.name, key=key)
            raise PersistenceError(f"failed to load '{key}' from store: {e}") from e

        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise PersistenceError(
                f"stored value for '{key}' is {type(raw).__name__}, expected an object"
            )

        records: dict[str, Record[P, R]] = {}
        unparsed: dict[str, Any] = {}
        for record_id, data in raw.items():
            try:
                records[record_id] = self._kind.record_from_dict(record_id, data)
            except (InvalidPayloadError, KeyError, TypeError, ValueError):
                unparsed[record_id] = data
                logger.warning(
                    "record_unreadable_on_hydrate",
                    kind=self._kind.name,
                    record_id=record_id,
                    exc_info=True,
                )

        self._records = records
        self._unparsed = unparsed
        self._hydrated = True
        logger.info(
            "record_set_hydrated",
            kind=self._kind.name,
            count=len(records),
            unreadable=len(unparsed),
        )

    async def _commit(self, records: dict[str, Record[P, R]]) -> None:
        """Persist the next record set, then make it the live one."""
        key = self._kind.store_key
        serialized = dict(self._unparsed)
        serialized.update({rid: record.to_dict() for rid, record in records.items()})
        try:
            await self._store.put(key, serialized)
        except Exception as e:
            logger.exception("record_set_persist_failed", kind=self._kind.name, key=key)
            raise PersistenceError(f"failed to persist '{key}': {e}") from e
        self._records = records

    def _new_id(self) -> str:
        for _ in range(_MAX_ID_ATTEMPTS):
            candidate = self._id_factory()
            if candidate not in self._records and candidate not in self._unparsed:
                return candidate
        msg = f"could not generate a unique {self._kind.name} id"
        raise RuntimeError(msg)
