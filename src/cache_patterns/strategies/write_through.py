"""Write-through inserts."""

import logging

from cache_patterns.models import Entity, Strategy
from cache_patterns.strategies.snapshot import SnapshotCache

logger = logging.getLogger(__name__)


class WriteThroughAppender:
    """Inserts into the store and synchronizes the write-through snapshot.

    After ``insert`` returns the store holds the record and the snapshot
    includes it. A cold snapshot is rebuilt from the store on the first write.
    Concurrent appends race on the snapshot (last writer wins).
    """

    strategy = Strategy.WRITE_THROUGH

    def __init__(self, snapshots: SnapshotCache) -> None:
        self._snapshots = snapshots

    async def insert(self, entity: Entity) -> Entity:
        """Insert an entity.

        Args:
            entity: Entity to create; any id it carries is replaced.

        Returns:
            Entity: The entity with its store-assigned id.
        """
        entity_id = await self._snapshots.record_store.insert(entity.fields)
        created = entity.with_id(entity_id)

        entities = await self._snapshots.load(self.strategy)
        if entities is None:
            logger.debug("Write-through snapshot absent, rebuilding from store")
            await self._snapshots.seed(self.strategy)
            return created

        for position, cached in enumerate(entities):
            if cached.same_record(created):
                entities[position] = created
                break
        else:
            entities.append(created)
        await self._snapshots.save(self.strategy, entities)
        return created
