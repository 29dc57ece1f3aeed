"""Durable store contract used as the coordinator's write-through backing store."""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class DurableStore(Protocol):
    """Async key-value store. A value is durable once put() returns.

    Values are JSON-compatible structures. get() returns None when the key
    has never been written.
    """

    async def get(self, key: str) -> Any | None: ...

    async def put(self, key: str, value: Any) -> None: ...
