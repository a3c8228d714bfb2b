"""Pytest configuration and fixtures for cache-patterns tests."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from cache_patterns.models import Entity
from cache_patterns.persistence.memory import InMemoryCacheStore
from cache_patterns.strategies.snapshot import SnapshotCache


class FakeRecordStore:
    """In-memory record store that counts calls.

    ``update_gate`` can be set to an Event to hold every update until it is
    released; ``fail_update_ids`` makes updates for those ids raise.
    """

    def __init__(self, rows: list[dict[str, Any]] | None = None) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self._next_id = 1
        for row in rows or []:
            self._next_id = max(self._next_id, row["id"] + 1)
            self.rows[row["id"]] = {k: v for k, v in row.items() if k != "id"}
        self.query_calls = 0
        self.insert_calls = 0
        self.update_calls: list[tuple[int, dict[str, Any]]] = []
        self.update_gate: asyncio.Event | None = None
        self.update_started = asyncio.Event()
        self.fail_update_ids: set[int] = set()

    async def query_all(self) -> list[Entity]:
        self.query_calls += 1
        return [Entity(id=i, fields=dict(f)) for i, f in sorted(self.rows.items())]

    async def insert(self, fields: dict[str, Any]) -> int:
        self.insert_calls += 1
        new_id = self._next_id
        self._next_id += 1
        self.rows[new_id] = {k: v for k, v in fields.items() if k != "id"}
        return new_id

    async def update_by_id(self, entity_id: int, fields: dict[str, Any]) -> int:
        self.update_calls.append((entity_id, dict(fields)))
        self.update_started.set()
        if self.update_gate is not None:
            await self.update_gate.wait()
        if entity_id in self.fail_update_ids:
            raise ConnectionError(f"store write for {entity_id} failed")
        if entity_id not in self.rows:
            return 0
        self.rows[entity_id].update(fields)
        return 1

    async def close(self) -> None:
        pass


@pytest.fixture()
def seed_rows() -> list[dict[str, Any]]:
    """Provide a small users table."""
    return [
        {"id": 1, "name": "Ann", "age": 30, "description": "first"},
        {"id": 3, "name": "Bob", "age": 41, "description": "second"},
        {"id": 5, "name": "Cid", "age": 25, "description": "third"},
    ]


@pytest.fixture()
def record_store(seed_rows: list[dict[str, Any]]) -> FakeRecordStore:
    return FakeRecordStore(seed_rows)


@pytest.fixture()
def cache_store() -> InMemoryCacheStore:
    return InMemoryCacheStore()


@pytest.fixture()
def snapshots(record_store: FakeRecordStore, cache_store: InMemoryCacheStore) -> SnapshotCache:
    return SnapshotCache(record_store, cache_store)


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    """Provide a path for a fresh SQLite database."""
    return tmp_path / "users.db"
