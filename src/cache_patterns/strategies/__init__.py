"""Cache consistency strategies."""

from cache_patterns.strategies.cache_aside import CacheAsideReader
from cache_patterns.strategies.snapshot import SnapshotCache
from cache_patterns.strategies.write_back import WriteBackBuffer
from cache_patterns.strategies.write_through import WriteThroughAppender

__all__ = [
    "CacheAsideReader",
    "SnapshotCache",
    "WriteBackBuffer",
    "WriteThroughAppender",
]
