"""In-process cache store."""

from cache_patterns.persistence.base import CacheStore


class InMemoryCacheStore(CacheStore):
    """Dictionary-backed cache store for single-process deployments and tests.

    Behaves like the Redis store: values are bytes, no expiry, a missing key
    yields None.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    def __contains__(self, key: str) -> bool:
        return key in self._data

    def __len__(self) -> int:
        return len(self._data)

    async def get(self, key: str) -> bytes | None:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        if not isinstance(value, bytes):
            raise TypeError(f"Cache values must be bytes, got {type(value).__name__}")
        self._data[key] = value

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def compare_and_set(self, key: str, expected: bytes, value: bytes | None) -> bool:
        # No await between the check and the write, so this runs as one step on the loop.
        if self._data.get(key) != expected:
            return False
        if value is None:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        return True

    async def close(self) -> None:
        self._data.clear()
