"""Record store and cache store clients."""

from cache_patterns.persistence.base import CacheStore, RecordStore
from cache_patterns.persistence.memory import InMemoryCacheStore
from cache_patterns.persistence.redis_cache import RedisCacheStore, RedisCacheStoreConfig
from cache_patterns.persistence.sqlite import SqliteRecordStore, SqliteRecordStoreConfig

__all__ = [
    "CacheStore",
    "InMemoryCacheStore",
    "RecordStore",
    "RedisCacheStore",
    "RedisCacheStoreConfig",
    "SqliteRecordStore",
    "SqliteRecordStoreConfig",
]
