"""Redis cache store using the redis-py async client."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Self

import redis.asyncio as redis

from cache_patterns.errors import CacheUnavailableError
from cache_patterns.persistence.base import CacheStore

if TYPE_CHECKING:
    from redis.asyncio import Redis

# An empty replacement deletes the key; encoded values are never empty.
_COMPARE_AND_SET_SCRIPT = """
if redis.call("get", KEYS[1]) ~= ARGV[1] then
    return 0
end
if ARGV[2] == "" then
    redis.call("del", KEYS[1])
else
    redis.call("set", KEYS[1], ARGV[2])
end
return 1
"""


@dataclass
class RedisCacheStoreConfig:
    """Configuration for RedisCacheStore.

    Attributes:
        url: Redis connection URL.
        socket_timeout: Seconds before a socket operation times out.
    """

    url: str = field(
        default_factory=lambda: os.getenv("CACHE_LAYER_REDIS_URL", "redis://localhost:6379/0")
    )
    socket_timeout: float = 5.0


class RedisCacheStore(CacheStore):
    """Cache store backed by one shared Redis client.

    Values are stored as raw bytes with no expiry. A missing key is reported
    as None; every Redis error is raised as CacheUnavailableError so outages
    are never mistaken for misses.
    """

    def __init__(
        self,
        config: RedisCacheStoreConfig | None = None,
        client: Redis | None = None,
    ) -> None:
        self._config = config or RedisCacheStoreConfig()
        self._client = client

    async def __aenter__(self) -> Self:
        await self.open()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    async def open(self) -> None:
        """Create the client and check the connection."""
        client = self._get_client()
        try:
            await client.ping()
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"Cannot reach Redis: {exc}") from exc

    def _get_client(self) -> Redis:
        if self._client is None:
            self._client = redis.from_url(  # type: ignore[no-untyped-call]
                self._config.url,
                decode_responses=False,
                socket_timeout=self._config.socket_timeout,
            )
        return self._client

    async def get(self, key: str) -> bytes | None:
        try:
            value = await self._get_client().get(key)
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"GET {key} failed: {exc}") from exc
        if isinstance(value, str):
            return value.encode("utf-8")
        return value

    async def set(self, key: str, value: bytes) -> None:
        try:
            await self._get_client().set(key, value)
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"SET {key} failed: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._get_client().delete(key)
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"DEL {key} failed: {exc}") from exc

    async def compare_and_set(self, key: str, expected: bytes, value: bytes | None) -> bool:
        """Swap the value in one Lua script so no other client can interleave."""
        try:
            result = await self._get_client().eval(
                _COMPARE_AND_SET_SCRIPT, 1, key, expected, b"" if value is None else value
            )
        except redis.RedisError as exc:
            raise CacheUnavailableError(f"Compare-and-set of {key} failed: {exc}") from exc
        return bool(result)

    async def close(self) -> None:
        """Close the Redis connection."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
