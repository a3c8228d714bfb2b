"""Cache-Patterns.

Cache-aside, write-through and write-back consistency strategies between an
async record store and a key-value cache, with a background reconciler that
drains buffered write-back mutations into the store.
"""

from cache_patterns.errors import (
    CacheLayerError,
    CacheUnavailableError,
    EntityNotFoundError,
    SerializationError,
    StoreUnavailableError,
)
from cache_patterns.models import (
    CacheKeys,
    Entity,
    ReconcileResult,
    ReconcileStatus,
    Strategy,
)
from cache_patterns.patterns.reconciler import Reconciler
from cache_patterns.service import CacheLayer, CacheLayerConfig
from cache_patterns.strategies import (
    CacheAsideReader,
    WriteBackBuffer,
    WriteThroughAppender,
)

__version__ = "0.1.0"

__all__ = [
    "CacheAsideReader",
    "CacheKeys",
    "CacheLayer",
    "CacheLayerConfig",
    "CacheLayerError",
    "CacheUnavailableError",
    "Entity",
    "EntityNotFoundError",
    "ReconcileResult",
    "ReconcileStatus",
    "Reconciler",
    "SerializationError",
    "StoreUnavailableError",
    "Strategy",
    "WriteBackBuffer",
    "WriteThroughAppender",
]
