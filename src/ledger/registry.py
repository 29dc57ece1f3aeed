"""CoordinatorRegistry: one LifecycleCoordinator per entity kind.

Created at startup; no mutation after init. The gateway looks up the
coordinator for a request by kind name.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from datetime import datetime

from src.ledger.coordinator import LifecycleCoordinator
from src.ledger.kinds import ALL_KINDS, EntityKind
from src.store.base import DurableStore


class CoordinatorRegistry:
    """Registry of per-kind coordinators sharing one durable store.

    Each coordinator writes under its own store key, so kinds never collide.
    """

    def __init__(self) -> None:
        self._coordinators: dict[str, LifecycleCoordinator] = {}

    def register(self, coordinator: LifecycleCoordinator) -> None:
        name = coordinator.kind.name
        if name in self._coordinators:
            msg = f"Coordinator for kind '{name}' already registered"
            raise ValueError(msg)
        self._coordinators[name] = coordinator

    def get(self, kind: str) -> LifecycleCoordinator:
        """Raises KeyError if no coordinator is registered for kind."""
        if kind not in self._coordinators:
            msg = f"Entity kind '{kind}' not registered"
            raise KeyError(msg)
        return self._coordinators[kind]

    def kinds(self) -> list[str]:
        return list(self._coordinators.keys())

    async def hydrate_all(self) -> dict[str, int]:
        """Hydrate every coordinator; returns record counts per kind."""
        return {
            name: await coordinator.hydrate()
            for name, coordinator in self._coordinators.items()
        }


def build_registry(
    store: DurableStore,
    *,
    kinds: Iterable[EntityKind] = ALL_KINDS,
    clock: Callable[[], datetime] | None = None,
) -> CoordinatorRegistry:
    """Create a registry with one coordinator per kind over the given store."""
    registry = CoordinatorRegistry()
    for kind in kinds:
        registry.register(LifecycleCoordinator(kind, store, clock=clock))
    return registry
