"""Tests for domain models."""

from __future__ import annotations

import dataclasses

import pytest

from cache_patterns.models import (
    CacheKeys,
    Entity,
    ReconcileResult,
    ReconcileStatus,
    Strategy,
)


class TestStrategy:
    """Test cases for the Strategy enum."""

    def test_strategies_have_distinct_values(self) -> None:
        """Every strategy owns its own namespace."""
        values = {strategy.value for strategy in Strategy}
        assert len(values) == 3

    def test_strategy_is_str_enum(self) -> None:
        assert Strategy.WRITE_BACK == "write-back"


class TestCacheKeys:
    """Test cases for the cache key schema."""

    def test_snapshot_keys_are_independent_per_strategy(self) -> None:
        keys = CacheKeys()
        snapshot_keys = {keys.snapshot(strategy) for strategy in Strategy}
        assert snapshot_keys == {"users:cache-aside", "users:write-through", "users:write-back"}

    def test_pending_key(self) -> None:
        assert CacheKeys("orders").pending(Strategy.WRITE_BACK) == "orders:write-back:pending"

    def test_pending_key_differs_from_snapshot_key(self) -> None:
        keys = CacheKeys()
        assert keys.pending(Strategy.WRITE_BACK) != keys.snapshot(Strategy.WRITE_BACK)


class TestEntity:
    """Test cases for Entity."""

    def test_entity_is_immutable(self) -> None:
        entity = Entity(id=1, fields={"name": "A"})
        with pytest.raises(dataclasses.FrozenInstanceError):
            entity.id = 2  # type: ignore[misc]

    def test_same_record_compares_ids_only(self) -> None:
        assert Entity(id=1, fields={"name": "A"}).same_record(Entity(id=1, fields={"name": "B"}))
        assert not Entity(id=1).same_record(Entity(id=2))

    def test_unsaved_entities_are_never_the_same_record(self) -> None:
        assert not Entity(fields={"name": "A"}).same_record(Entity(fields={"name": "A"}))

    def test_with_id_copies_fields(self) -> None:
        original = Entity(fields={"name": "A"})
        saved = original.with_id(7)
        assert saved.id == 7
        assert saved.fields == {"name": "A"}
        assert saved.fields is not original.fields

    def test_merged_preserves_id_and_unrelated_fields(self) -> None:
        entity = Entity(id=5, fields={"name": "A", "age": 3})
        updated = entity.merged({"name": "B", "id": 99})
        assert updated.id == 5
        assert updated.fields == {"name": "B", "age": 3}
        assert entity.fields == {"name": "A", "age": 3}

    def test_mutable_fields_extracts_known_attributes(self) -> None:
        entity = Entity(id=5, fields={"name": "B", "age": 3, "created_at": "x"})
        assert entity.mutable_fields() == {"name": "B", "age": 3}
        assert entity.mutable_fields(("name",)) == {"name": "B"}

    def test_dict_round_trip(self) -> None:
        entity = Entity(id=5, fields={"name": "B", "age": 3})
        assert entity.to_dict() == {"id": 5, "name": "B", "age": 3}
        assert Entity.from_dict(entity.to_dict()) == entity


class TestReconcileResult:
    """Test cases for ReconcileResult."""

    def test_to_dict(self) -> None:
        result = ReconcileResult(status=ReconcileStatus.DRAINED, written=2, orphaned=(9,))
        assert result.to_dict() == {
            "status": "drained",
            "written": 2,
            "orphaned": [9],
            "error": None,
        }
