"""Record set hydration across simulated process restarts."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from src.infra.errors import NotFoundError, PersistenceError
from src.ledger.coordinator import LifecycleCoordinator
from src.ledger.kinds import BUILD, DEPLOYMENT
from src.ledger.models import RecordStatus
from src.ledger.registry import build_registry
from src.store.memory import InMemoryStore


def _as_dicts(records) -> dict:
    return {rid: record.to_dict() for rid, record in records.items()}


class TestRestart:
    @pytest.mark.asyncio
    async def test_list_survives_restart(self, store: InMemoryStore):
        before = LifecycleCoordinator(BUILD, store)
        done = await before.start({"packageName": "lib-a", "dependencies": ["lib-b"]})
        await before.start({"packageName": "lib-c"})
        await before.complete(done, True, {"artifacts": ["lib-a.tgz"]})
        snapshot = _as_dicts(await before.list())

        after = LifecycleCoordinator(BUILD, store)
        assert _as_dicts(await after.list()) == snapshot

    @pytest.mark.asyncio
    async def test_first_operation_after_restart_sees_persisted_record(
        self, store: InMemoryStore
    ):
        record_id = await LifecycleCoordinator(BUILD, store).start({"packageName": "lib-a"})

        restarted = LifecycleCoordinator(BUILD, store)
        assert restarted.hydrated is False
        record = await restarted.get(record_id)
        assert record.payload.package_name == "lib-a"
        assert restarted.hydrated is True

    @pytest.mark.asyncio
    async def test_complete_after_restart(self, store: InMemoryStore):
        record_id = await LifecycleCoordinator(BUILD, store).start({"packageName": "lib-a"})

        restarted = LifecycleCoordinator(BUILD, store)
        await restarted.complete(record_id, False, {"artifacts": []})
        assert (await restarted.get(record_id)).status is RecordStatus.failed

    @pytest.mark.asyncio
    async def test_start_after_restart_keeps_existing_records(self, store: InMemoryStore):
        first = await LifecycleCoordinator(BUILD, store).start({"packageName": "lib-a"})

        restarted = LifecycleCoordinator(BUILD, store)
        second = await restarted.start({"packageName": "lib-b"})

        assert set(await store.get("builds")) == {first, second}

    @pytest.mark.asyncio
    async def test_empty_store_hydrates_to_empty_set(self, store: InMemoryStore):
        coordinator = LifecycleCoordinator(DEPLOYMENT, store)
        assert await coordinator.hydrate() == 0
        assert await coordinator.list() == {}

    @pytest.mark.asyncio
    async def test_registry_hydrates_every_kind(self, store: InMemoryStore):
        seed = build_registry(store)
        await seed.get("build").start({"packageName": "lib-a"})
        await seed.get("build").start({"packageName": "lib-b"})
        await seed.get("deployment").start({"environment": "prod"})

        counts = await build_registry(store).hydrate_all()
        assert counts == {"build": 2, "deployment": 1}


class TestPersistedFormats:
    @pytest.mark.asyncio
    async def test_epoch_millisecond_timestamps_are_read(self):
        store = InMemoryStore({
            "builds": {
                "b-1": {
                    "id": "b-1",
                    "packageName": "lib-a",
                    "status": "success",
                    "startTime": 1_700_000_000_000,
                    "endTime": 1_700_000_060_000,
                    "dependencies": [],
                    "artifacts": ["lib-a.tgz"],
                },
            },
        })
        record = await LifecycleCoordinator(BUILD, store).get("b-1")

        assert record.start_time == datetime.fromtimestamp(1_700_000_000, tz=UTC)
        assert record.end_time == datetime.fromtimestamp(1_700_000_060, tz=UTC)
        assert record.status is RecordStatus.success
        assert record.result.artifacts == ["lib-a.tgz"]

    @pytest.mark.asyncio
    async def test_deploying_status_maps_to_running(self):
        store = InMemoryStore({
            "deployments": {
                "d-1": {
                    "id": "d-1",
                    "environment": "prod",
                    "packages": ["lib-a"],
                    "status": "deploying",
                    "startTime": 1_700_000_000_000,
                },
            },
        })
        coordinator = LifecycleCoordinator(DEPLOYMENT, store)
        record = await coordinator.get("d-1")
        assert record.is_running

        await coordinator.complete("d-1", True, {"details": {"url": "https://prod"}})
        assert (await store.get("deployments"))["d-1"]["status"] == "success"

    @pytest.mark.asyncio
    async def test_unreadable_entries_are_hidden_from_list(self):
        store = InMemoryStore({
            "builds": {
                "good": {
                    "packageName": "lib-a",
                    "status": "running",
                    "startTime": "2026-01-01T00:00:00+00:00",
                },
                "no-package": {"status": "running", "startTime": "2026-01-01T00:00:00+00:00"},
                "bad-status": {
                    "packageName": "lib-b",
                    "status": "exploded",
                    "startTime": "2026-01-01T00:00:00+00:00",
                },
                "not-a-dict": "garbage",
            },
        })
        records = await LifecycleCoordinator(BUILD, store).list()
        assert set(records) == {"good"}

    @pytest.mark.asyncio
    async def test_unreadable_entries_survive_later_writes(self):
        legacy = {
            "id": "legacy",
            "status": "running",
            "startTime": 1_700_000_000_000,
            "dependencies": [],
        }
        store = InMemoryStore({"builds": {"legacy": legacy, "not-a-dict": "garbage"}})
        coordinator = LifecycleCoordinator(BUILD, store)

        new_id = await coordinator.start({"packageName": "lib-a"})
        await coordinator.complete(new_id, True, {"artifacts": ["lib-a.tgz"]})

        persisted = await store.get("builds")
        assert persisted["legacy"] == legacy
        assert persisted["not-a-dict"] == "garbage"
        assert persisted[new_id]["status"] == "success"

    @pytest.mark.asyncio
    async def test_unreadable_entry_cannot_be_completed(self):
        legacy = {"id": "legacy", "status": "running", "startTime": 1_700_000_000_000}
        store = InMemoryStore({"builds": {"legacy": legacy}})
        coordinator = LifecycleCoordinator(BUILD, store)

        with pytest.raises(NotFoundError):
            await coordinator.complete("legacy", True)
        assert (await store.get("builds"))["legacy"] == legacy

    @pytest.mark.asyncio
    async def test_new_id_never_reuses_an_unreadable_entry_id(self):
        store = InMemoryStore({"builds": {"taken": {"status": "running"}}})
        ids = iter(["taken", "fresh"])
        coordinator = LifecycleCoordinator(BUILD, store, id_factory=lambda: next(ids))

        assert await coordinator.start({"packageName": "lib-a"}) == "fresh"
        assert (await store.get("builds"))["taken"] == {"status": "running"}

    @pytest.mark.asyncio
    async def test_non_mapping_value_is_a_persistence_error(self):
        store = InMemoryStore({"builds": ["not", "a", "mapping"]})
        coordinator = LifecycleCoordinator(BUILD, store)
        with pytest.raises(PersistenceError):
            await coordinator.list()
