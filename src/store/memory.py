"""In-process durable store for development and tests."""

from __future__ import annotations

import copy
from typing import Any

import structlog

logger = structlog.get_logger()


class InMemoryStore:
    """Dict-backed DurableStore.

    Values are deep-copied in and out so callers never share references
    with the stored state, mirroring a real serializing backend. The same
    instance can be handed to a second coordinator to simulate a restart.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str) -> Any | None:
        value = self._data.get(key)
        return copy.deepcopy(value)

    async def put(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)
        logger.debug("memory_store_put", key=key)

    def keys(self) -> list[str]:
        return list(self._data)
