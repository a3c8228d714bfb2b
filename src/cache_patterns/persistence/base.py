"""Base protocols for the record store and cache store collaborators."""

from typing import Any, Protocol

from cache_patterns.models import Entity


class RecordStore(Protocol):
    """Protocol for the durable, key-indexed entity store."""

    async def query_all(self) -> list[Entity]:
        """Read the full entity collection."""
        ...

    async def insert(self, fields: dict[str, Any]) -> int:
        """Insert a record. Returns the store-assigned id."""
        ...

    async def update_by_id(self, entity_id: int, fields: dict[str, Any]) -> int:
        """Update the record with the given id. Returns rows matched."""
        ...

    async def close(self) -> None:
        """Close the store and release resources."""
        ...


class CacheStore(Protocol):
    """Protocol for the key-value cache holding serialized snapshots.

    ``get`` returns None only for a genuine miss; any other failure raises
    CacheUnavailableError.
    """

    async def get(self, key: str) -> bytes | None:
        """Get the value stored under key, or None when absent."""
        ...

    async def set(self, key: str, value: bytes) -> None:
        """Store value under key."""
        ...

    async def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key is not an error."""
        ...

    async def compare_and_set(self, key: str, expected: bytes, value: bytes | None) -> bool:
        """Atomically replace key's value if it still equals expected.

        A value of None deletes the key instead.

        Returns:
            bool: True if the swap happened, False if the key held something else.
        """
        ...

    async def close(self) -> None:
        """Close the cache connection."""
        ...
