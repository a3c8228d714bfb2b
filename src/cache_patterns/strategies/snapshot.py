"""Snapshot and pending-list access shared by every strategy."""

from cache_patterns.codec import EntityCodec
from cache_patterns.errors import CacheUnavailableError
from cache_patterns.models import CacheKeys, Entity, Strategy
from cache_patterns.persistence.base import CacheStore, RecordStore

TRIM_ATTEMPTS = 5


class SnapshotCache:
    """Reads and writes per-strategy snapshots and pending-mutation lists.

    Wraps a cache store, a record store and the codec so strategies only deal
    in entities and ids. Apart from ``trim_pending`` none of these methods are
    atomic with respect to one another: concurrent read-modify-write cycles on
    the same key are last-writer-wins.

    Args:
        record_store: Source of truth used to seed absent snapshots.
        cache_store: Holds the serialized snapshots and pending lists.
        codec: Serializer for cached values.
        keys: Key schema for the entity collection.
    """

    def __init__(
        self,
        record_store: RecordStore,
        cache_store: CacheStore,
        codec: EntityCodec | None = None,
        keys: CacheKeys | None = None,
    ) -> None:
        self.record_store = record_store
        self.cache_store = cache_store
        self.codec = codec or EntityCodec()
        self.keys = keys or CacheKeys()

    async def load(self, strategy: Strategy) -> list[Entity] | None:
        """Load the snapshot for a strategy, or None on a miss."""
        data = await self.cache_store.get(self.keys.snapshot(strategy))
        if data is None:
            return None
        return self.codec.decode_snapshot(data)

    async def save(self, strategy: Strategy, entities: list[Entity]) -> None:
        await self.cache_store.set(self.keys.snapshot(strategy), self.codec.encode_snapshot(entities))

    async def seed(self, strategy: Strategy) -> list[Entity]:
        """Rebuild a strategy's snapshot from the full store collection."""
        entities = await self.record_store.query_all()
        await self.save(strategy, entities)
        return entities

    async def load_or_seed(self, strategy: Strategy) -> list[Entity]:
        entities = await self.load(strategy)
        if entities is None:
            entities = await self.seed(strategy)
        return entities

    async def load_pending(self, strategy: Strategy) -> list[int]:
        """Load the pending id list; an absent list is empty."""
        data = await self.cache_store.get(self.keys.pending(strategy))
        if data is None:
            return []
        return self.codec.decode_pending(data)

    async def save_pending(self, strategy: Strategy, entity_ids: list[int]) -> None:
        await self.cache_store.set(self.keys.pending(strategy), self.codec.encode_pending(entity_ids))

    async def trim_pending(self, strategy: Strategy, drained: int) -> list[int]:
        """Remove the first ``drained`` entries from the pending list.

        The list only grows between drains, so anything past the drained
        prefix was appended while the drain ran and is kept for the next one.
        The key is deleted outright when nothing remains. The removal is a
        compare-and-set against the bytes just read; if an update rewrote the
        list in between, the trim starts over from the new list.

        Returns:
            list[int]: The ids still pending.

        Raises:
            CacheUnavailableError: If the list kept changing for every attempt.
        """
        key = self.keys.pending(strategy)
        for _ in range(TRIM_ATTEMPTS):
            data = await self.cache_store.get(key)
            if data is None:
                return []
            remaining = self.codec.decode_pending(data)[drained:]
            replacement = self.codec.encode_pending(remaining) if remaining else None
            if await self.cache_store.compare_and_set(key, data, replacement):
                return remaining
        raise CacheUnavailableError(f"Pending list {key} changed on every trim attempt")
