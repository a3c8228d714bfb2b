"""Domain models for the cache-consistency layer.

This module defines the core data structures shared by every strategy and by
the reconciler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_MUTABLE_FIELDS: tuple[str, ...] = ("name", "age", "description")


class Strategy(str, Enum):
    """Cache consistency strategy.

    Each strategy owns an independent cache namespace so snapshots written by
    one strategy are never visible to another.

    Attributes:
        CACHE_ASIDE: Lazy loading; the cache is filled on read misses.
        WRITE_THROUGH: Inserts go to the store and the cache before returning.
        WRITE_BACK: Updates go to the cache only and are reconciled later.
    """

    CACHE_ASIDE = "cache-aside"
    WRITE_THROUGH = "write-through"
    WRITE_BACK = "write-back"


@dataclass(frozen=True, slots=True)
class CacheKeys:
    """Cache key schema for one entity collection.

    Key format: ``{prefix}:{strategy}`` for snapshots and
    ``{prefix}:{strategy}:pending`` for pending-mutation lists.

    Attributes:
        prefix: Collection namespace (default: "users").
    """

    prefix: str = "users"

    def snapshot(self, strategy: Strategy) -> str:
        """Key holding the serialized snapshot for a strategy."""
        return f"{self.prefix}:{strategy.value}"

    def pending(self, strategy: Strategy) -> str:
        """Key holding the pending-mutation id list for a strategy."""
        return f"{self.prefix}:{strategy.value}:pending"


@dataclass(frozen=True, slots=True)
class Entity:
    """A record held by the store and mirrored in cache snapshots.

    Attributes:
        id: Store-assigned identifier, None until inserted.
        fields: Mutable attributes (name, age, description, ...).
    """

    id: int | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    def same_record(self, other: Entity) -> bool:
        """Two entities are the same record iff both have ids and they match."""
        return self.id is not None and self.id == other.id

    def with_id(self, entity_id: int) -> Entity:
        """Return a copy carrying the given identifier."""
        return Entity(id=entity_id, fields=dict(self.fields))

    def merged(self, updates: dict[str, Any]) -> Entity:
        """Return a copy with ``updates`` applied over the current fields.

        The identifier is preserved; an ``id`` key in ``updates`` is ignored.
        """
        fields = dict(self.fields)
        fields.update({k: v for k, v in updates.items() if k != "id"})
        return Entity(id=self.id, fields=fields)

    def mutable_fields(self, names: tuple[str, ...] = DEFAULT_MUTABLE_FIELDS) -> dict[str, Any]:
        """Extract the updatable attributes present on this entity."""
        return {name: self.fields[name] for name in names if name in self.fields}

    def to_dict(self) -> dict[str, Any]:
        """Flatten to the cached representation ``{"id": ..., **fields}``."""
        return {"id": self.id, **self.fields}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Entity:
        """Build an entity from its flattened representation."""
        fields = {k: v for k, v in data.items() if k != "id"}
        return cls(id=data.get("id"), fields=fields)


class ReconcilerState(str, Enum):
    """Reconciler state machine: ``IDLE -> DRAINING -> IDLE``."""

    IDLE = "idle"
    DRAINING = "draining"


class ReconcileStatus(str, Enum):
    """Outcome of a single reconciler tick.

    Attributes:
        SKIPPED: A drain was already in flight; the tick was dropped.
        IDLE: Nothing was pending.
        NO_SNAPSHOT: Pending ids exist but the snapshot is absent.
        DRAINED: Every pending id was written to the store.
        FAILED: The drain raised; the pending list was left in place.
    """

    SKIPPED = "skipped"
    IDLE = "idle"
    NO_SNAPSHOT = "no_snapshot"
    DRAINED = "drained"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ReconcileResult:
    """Result of one reconciler tick.

    Attributes:
        status: What the tick did.
        written: Number of store updates issued.
        orphaned: Pending ids that no longer resolve against the snapshot.
        error: Error message when status is FAILED.
    """

    status: ReconcileStatus
    written: int = 0
    orphaned: tuple[int, ...] = ()
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": self.status.value,
            "written": self.written,
            "orphaned": list(self.orphaned),
            "error": self.error,
        }


@dataclass
class ReconcilerMetrics:
    """Metrics for tracking reconciler activity."""

    state: ReconcilerState
    ticks: int
    skipped_ticks: int
    drains: int
    records_written: int
    orphaned_ids: int = field(default=0)
    failures: int = field(default=0)
