"""End-to-end consistency scenarios against a real SQLite store.

Each test wires the strategies to an aiosqlite-backed record store and an
in-process cache, then checks what the store and the snapshots hold after
reads, inserts, buffered updates and reconciliation.
"""

from __future__ import annotations

import asyncio
import random
from pathlib import Path

import pytest
import pytest_asyncio

from cache_patterns.models import Entity, ReconcileStatus, Strategy
from cache_patterns.persistence.memory import InMemoryCacheStore
from cache_patterns.persistence.sqlite import SqliteRecordStore, SqliteRecordStoreConfig
from cache_patterns.service import CacheLayer, CacheLayerConfig


@pytest_asyncio.fixture()
async def layer(db_path: Path):
    """A cache layer on a fresh SQLite database with five users and no running timer."""
    store = SqliteRecordStore(SqliteRecordStoreConfig(db_path=db_path))
    layer = CacheLayer(store, InMemoryCacheStore(), CacheLayerConfig(db_path=db_path))
    await layer.open(start_reconciler=False)
    for i in range(1, 6):
        await store.insert({"name": f"user{i}", "age": 20 + i, "description": "seed"})
    try:
        yield layer
    finally:
        await layer.close()


async def store_row(layer: CacheLayer, entity_id: int) -> Entity:
    (row,) = [e for e in await layer.read() if e.id == entity_id]
    return row


class TestCacheAsideFlow:
    """Lazy loading against the real store."""

    @pytest.mark.asyncio
    async def test_cold_then_warm_read(self, layer: CacheLayer) -> None:
        first = await layer.read(Strategy.CACHE_ASIDE)

        # Store changes behind the cache's back are not visible to a warm read.
        await layer.record_store.insert({"name": "late"})
        second = await layer.read(Strategy.CACHE_ASIDE)

        assert second == first
        assert len(second) == 5


class TestWriteThroughFlow:
    """Insert propagation."""

    @pytest.mark.asyncio
    async def test_insert_lands_in_store_and_snapshot(self, layer: CacheLayer) -> None:
        created = await layer.create(Entity(fields={"name": "A", "age": 1}))

        assert created.id is not None
        assert (await store_row(layer, created.id)).fields["name"] == "A"
        snapshot = await layer.snapshots.load(Strategy.WRITE_THROUGH)
        assert snapshot is not None
        assert [e for e in snapshot if e.id == created.id][0].fields["age"] == 1

    @pytest.mark.asyncio
    async def test_subsequent_inserts_append(self, layer: CacheLayer) -> None:
        first = await layer.create(Entity(fields={"name": "A"}))
        second = await layer.create(Entity(fields={"name": "B"}))

        snapshot = await layer.read(Strategy.WRITE_THROUGH)
        assert [e.id for e in snapshot][-2:] == [first.id, second.id]
        assert len(snapshot) == 7


class TestWriteBackFlow:
    """Buffered updates and reconciliation."""

    @pytest.mark.asyncio
    async def test_update_is_deferred_until_drain(self, layer: CacheLayer) -> None:
        updated = await layer.update(5, {"name": "B"})

        assert updated.fields["name"] == "B"
        assert await layer.buffer.pending() == [5]
        assert (await store_row(layer, 5)).fields["name"] == "user5"

        result = await layer.reconciler.tick()

        assert result.status is ReconcileStatus.DRAINED
        assert (await store_row(layer, 5)).fields == {
            "name": "B",
            "age": 25,
            "description": "seed",
        }
        assert await layer.buffer.pending() == []

    @pytest.mark.asyncio
    async def test_store_matches_last_cached_value_per_id(self, layer: CacheLayer) -> None:
        rng = random.Random(7)
        for step in range(30):
            entity_id = rng.randint(1, 5)
            await layer.update(entity_id, {"name": f"v{step}", "age": step})

        await layer.reconciler.tick()

        snapshot = await layer.snapshots.load(Strategy.WRITE_BACK)
        assert snapshot is not None
        assert await layer.read() == snapshot

    @pytest.mark.asyncio
    async def test_rerunning_drain_over_same_list_is_idempotent(self, layer: CacheLayer) -> None:
        await layer.update(2, {"name": "X"})
        await layer.update(2, {"name": "Y"})
        pending = await layer.buffer.pending()

        await layer.reconciler.tick()
        once = await layer.read()
        await layer.snapshots.save_pending(Strategy.WRITE_BACK, pending)
        await layer.reconciler.tick()

        assert await layer.read() == once

    @pytest.mark.asyncio
    async def test_concurrent_ticks_never_overlap(self, layer: CacheLayer) -> None:
        for entity_id in range(1, 6):
            await layer.update(entity_id, {"description": "updated"})

        results = await asyncio.gather(*(layer.reconciler.tick() for _ in range(5)))

        statuses = [r.status for r in results]
        assert statuses.count(ReconcileStatus.DRAINED) == 1
        assert set(statuses) <= {ReconcileStatus.DRAINED, ReconcileStatus.SKIPPED, ReconcileStatus.IDLE}
        assert sum(r.written for r in results) == 5
        assert all(e.fields["description"] == "updated" for e in await layer.read())
