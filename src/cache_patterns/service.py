"""Wiring of stores, strategies and the reconciler into one cache layer."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Self

from cache_patterns.codec import EntityCodec
from cache_patterns.models import DEFAULT_MUTABLE_FIELDS, CacheKeys, Entity, Strategy
from cache_patterns.patterns.reconciler import (
    Reconciler,
    default_interval_seconds,
    default_write_timeout_seconds,
)
from cache_patterns.persistence.base import CacheStore, RecordStore
from cache_patterns.persistence.redis_cache import RedisCacheStore, RedisCacheStoreConfig
from cache_patterns.persistence.sqlite import SqliteRecordStore, SqliteRecordStoreConfig
from cache_patterns.strategies.cache_aside import CacheAsideReader
from cache_patterns.strategies.snapshot import SnapshotCache
from cache_patterns.strategies.write_back import WriteBackBuffer
from cache_patterns.strategies.write_through import WriteThroughAppender

logger = logging.getLogger(__name__)


@dataclass
class CacheLayerConfig:
    """Configuration for CacheLayer.

    Unset fields take the defaults of the component they configure, so every
    environment variable is read where that component reads it.

    Attributes:
        db_path: SQLite database file for the record store.
        redis_url: Redis URL for the cache store.
        key_prefix: Cache key namespace of the entity collection.
        table_name: Record store table.
        mutable_fields: Attributes written by inserts and reconciliation.
        reconcile_interval_seconds: Seconds between reconciler ticks.
        write_timeout_seconds: Max seconds per reconciler store write.
    """

    db_path: Path = field(default_factory=lambda: SqliteRecordStoreConfig().db_path)
    redis_url: str = field(default_factory=lambda: RedisCacheStoreConfig().url)
    key_prefix: str = field(
        default_factory=lambda: os.getenv("CACHE_LAYER_KEY_PREFIX", CacheKeys().prefix)
    )
    table_name: str = field(default_factory=lambda: SqliteRecordStoreConfig().table_name)
    mutable_fields: tuple[str, ...] = DEFAULT_MUTABLE_FIELDS
    reconcile_interval_seconds: float = field(default_factory=default_interval_seconds)
    write_timeout_seconds: float = field(default_factory=default_write_timeout_seconds)

    @classmethod
    def from_env(cls) -> CacheLayerConfig:
        """Build a configuration from ``CACHE_LAYER_*`` and ``RECONCILE_*`` variables."""
        return cls()


class CacheLayer:
    """One record store connection, one cache connection, all three strategies.

    Entering the context opens both connections once and starts the
    reconciler; leaving it stops the reconciler (waiting for an in-flight
    drain) and closes both connections.

    Example:
        ```python
        async with CacheLayer.from_config(CacheLayerConfig.from_env()) as layer:
            users = await layer.read(Strategy.CACHE_ASIDE)
            created = await layer.create(Entity(fields={"name": "A", "age": 1}))
            await layer.update(created.id, {"name": "B"})
        ```
    """

    def __init__(
        self,
        record_store: RecordStore,
        cache_store: CacheStore,
        config: CacheLayerConfig | None = None,
    ) -> None:
        self._config = config or CacheLayerConfig()
        self.record_store = record_store
        self.cache_store = cache_store
        self.snapshots = SnapshotCache(
            record_store,
            cache_store,
            codec=EntityCodec(),
            keys=CacheKeys(prefix=self._config.key_prefix),
        )
        self.reader = CacheAsideReader(self.snapshots)
        self.appender = WriteThroughAppender(self.snapshots)
        self.buffer = WriteBackBuffer(self.snapshots)
        self.reconciler = Reconciler(
            self.snapshots,
            interval_seconds=self._config.reconcile_interval_seconds,
            write_timeout_seconds=self._config.write_timeout_seconds,
            update_fields=self._config.mutable_fields,
        )

    @classmethod
    def from_config(cls, config: CacheLayerConfig) -> CacheLayer:
        """Build a layer on SQLite and Redis from a configuration."""
        record_store = SqliteRecordStore(
            SqliteRecordStoreConfig(
                db_path=config.db_path,
                table_name=config.table_name,
                columns=config.mutable_fields,
            )
        )
        cache_store = RedisCacheStore(RedisCacheStoreConfig(url=config.redis_url))
        return cls(record_store, cache_store, config)

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def open(self, start_reconciler: bool = True) -> None:
        """Open store connections and optionally start the reconciler."""
        await _maybe_open(self.record_store)
        try:
            await _maybe_open(self.cache_store)
        except BaseException:
            await self.record_store.close()
            raise
        if start_reconciler:
            self.reconciler.start()
        logger.info("Cache layer ready (prefix=%s)", self._config.key_prefix)

    async def close(self) -> None:
        """Stop the reconciler and close store connections."""
        await self.reconciler.stop()
        await self.cache_store.close()
        await self.record_store.close()

    async def read(self, strategy: Strategy | None = None) -> list[Entity]:
        """Read the collection the way a strategy's endpoint does.

        Without a strategy the store is read directly. CACHE_ASIDE fills its snapshot on
        a miss; WRITE_THROUGH and WRITE_BACK only fall back to the store.
        """
        if strategy is None:
            return await self.reader.read_store()
        if strategy is Strategy.CACHE_ASIDE:
            return await self.reader.read(strategy)
        return await self.reader.peek(strategy)

    async def create(self, entity: Entity) -> Entity:
        return await self.appender.insert(entity)

    async def update(self, entity_id: int, fields: dict[str, Any]) -> Entity:
        return await self.buffer.update(entity_id, fields)


async def _maybe_open(store: Any) -> None:
    # open() is optional on the store protocols
    open_store = getattr(store, "open", None)
    if open_store is not None:
        await open_store()
