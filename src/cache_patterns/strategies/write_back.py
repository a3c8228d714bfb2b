"""Write-back updates buffered in the cache."""

import logging
from typing import Any

from cache_patterns.errors import EntityNotFoundError
from cache_patterns.models import Entity, Strategy
from cache_patterns.strategies.snapshot import SnapshotCache

logger = logging.getLogger(__name__)


class WriteBackBuffer:
    """Applies updates to the write-back snapshot and queues them for reconciliation.

    The record store is never written here; each update appends the entity id
    to the pending list and the Reconciler makes it durable later. Pending ids
    may repeat, and are resolved against the snapshot when drained so a
    reordered snapshot cannot send an update to the wrong record.

    Example:
        ```python
        buffer = WriteBackBuffer(snapshots)
        user = await buffer.update(5, {"name": "B"})

        await buffer.pending()  # [5] until the next drain
        ```
    """

    strategy = Strategy.WRITE_BACK

    def __init__(self, snapshots: SnapshotCache) -> None:
        self._snapshots = snapshots

    async def update(self, entity_id: int, fields: dict[str, Any]) -> Entity:
        """Update an entity in the write-back snapshot.

        Args:
            entity_id: Identifier of the entity to update.
            fields: New field values, merged over the cached ones.

        Returns:
            Entity: The updated entity as cached.

        Raises:
            EntityNotFoundError: If no entity with that id is in the snapshot.
        """
        entities = await self._snapshots.load_or_seed(self.strategy)
        pending = await self._snapshots.load_pending(self.strategy)

        position = self._find(entities, entity_id)
        if position is None:
            raise EntityNotFoundError(entity_id)

        updated = entities[position].merged(fields)
        entities[position] = updated
        pending.append(entity_id)

        await self._snapshots.save(self.strategy, entities)
        await self._snapshots.save_pending(self.strategy, pending)
        logger.debug("Buffered update for %s (%d pending)", entity_id, len(pending))
        return updated

    async def pending(self) -> list[int]:
        """Ids updated since the last reconciliation, in update order."""
        return await self._snapshots.load_pending(self.strategy)

    @staticmethod
    def _find(entities: list[Entity], entity_id: int) -> int | None:
        for position, entity in enumerate(entities):
            if entity.id == entity_id:
                return position
        return None
