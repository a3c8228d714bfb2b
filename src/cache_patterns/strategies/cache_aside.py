"""Cache-aside (lazy loading) reads."""

import logging

from cache_patterns.models import Entity, Strategy
from cache_patterns.strategies.snapshot import SnapshotCache

logger = logging.getLogger(__name__)


class CacheAsideReader:
    """Serves entity collections from a strategy snapshot, falling back to the store.

    A hit returns the full cached collection without touching the store. A
    miss is only a ``None`` from the cache; cache errors propagate instead of
    silently falling through to the store.

    Example:
        ```python
        reader = CacheAsideReader(snapshots)

        users = await reader.read()  # first call fills the cache
        users = await reader.read()  # served from the cache
        ```
    """

    def __init__(self, snapshots: SnapshotCache) -> None:
        self._snapshots = snapshots

    async def read(self, strategy: Strategy = Strategy.CACHE_ASIDE) -> list[Entity]:
        """Read a strategy's collection, populating its snapshot on a miss.

        Args:
            strategy: Which strategy namespace to read.

        Returns:
            list[Entity]: The full collection.
        """
        entities = await self._snapshots.load(strategy)
        if entities is not None:
            logger.debug("Cache hit for %s", strategy.value)
            return entities

        logger.debug("Cache miss for %s, loading from store", strategy.value)
        return await self._snapshots.seed(strategy)

    async def peek(self, strategy: Strategy) -> list[Entity]:
        """Read a strategy's snapshot without populating it on a miss.

        Write-through and write-back snapshots are only written by their write
        paths, so their reads fall back to the store and leave the cache as is.
        """
        entities = await self._snapshots.load(strategy)
        if entities is not None:
            return entities
        return await self._snapshots.record_store.query_all()

    async def read_store(self) -> list[Entity]:
        """Read the collection straight from the store."""
        return await self._snapshots.record_store.query_all()
