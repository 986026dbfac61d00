"""Key-value store capability used by the risk pipeline.

The pipeline only needs a handful of primitives, all of which Redis performs
atomically: get/set with TTL, a bounded list append, list reads, and a
hash increment that refreshes the key's expiry. ``RedisStore`` is the
production backend; ``InMemoryStore`` implements the same semantics inside
the process for tests and single-node development.
"""

import time
from collections.abc import Callable, Mapping
from typing import Protocol

import redis.asyncio as aioredis
import structlog
from redis.exceptions import RedisError

logger = structlog.get_logger()


class StoreError(Exception):
    """The backing store could not complete an operation."""


class KeyValueStore(Protocol):
    async def get(self, key: str) -> str | None: ...

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None: ...

    async def list_append(
        self, key: str, value: str, max_length: int, ttl_seconds: int | None = None
    ) -> None: ...

    async def list_range(self, key: str) -> list[str]: ...

    async def hash_increment(
        self, key: str, fields: Mapping[str, int], ttl_seconds: int | None = None
    ) -> None: ...

    async def hash_get_all(self, key: str) -> dict[str, int]: ...

    async def ping(self) -> bool: ...

    async def close(self) -> None: ...


class RedisStore:
    """redis.asyncio backed store. All multi-step writes run in MULTI/EXEC."""

    def __init__(self, client: aioredis.Redis) -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        client = aioredis.from_url(
            url,
            encoding="utf-8",
            decode_responses=True,
            socket_connect_timeout=5,
            health_check_interval=30,
        )
        return cls(client)

    async def get(self, key: str) -> str | None:
        try:
            return await self._client.get(key)
        except RedisError as exc:
            raise StoreError(f"GET {key} failed: {exc}") from exc

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        try:
            await self._client.set(key, value, ex=ttl_seconds)
        except RedisError as exc:
            raise StoreError(f"SET {key} failed: {exc}") from exc

    async def list_append(
        self, key: str, value: str, max_length: int, ttl_seconds: int | None = None
    ) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, value)
                pipe.ltrim(key, -max_length, -1)
                if ttl_seconds:
                    pipe.expire(key, ttl_seconds)
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"RPUSH {key} failed: {exc}") from exc

    async def list_range(self, key: str) -> list[str]:
        try:
            return await self._client.lrange(key, 0, -1)
        except RedisError as exc:
            raise StoreError(f"LRANGE {key} failed: {exc}") from exc

    async def hash_increment(
        self, key: str, fields: Mapping[str, int], ttl_seconds: int | None = None
    ) -> None:
        try:
            async with self._client.pipeline(transaction=True) as pipe:
                for name, amount in fields.items():
                    pipe.hincrby(key, name, amount)
                if ttl_seconds:
                    pipe.expire(key, ttl_seconds)
                await pipe.execute()
        except RedisError as exc:
            raise StoreError(f"HINCRBY {key} failed: {exc}") from exc

    async def hash_get_all(self, key: str) -> dict[str, int]:
        try:
            raw = await self._client.hgetall(key)
        except RedisError as exc:
            raise StoreError(f"HGETALL {key} failed: {exc}") from exc
        return {name: int(value) for name, value in raw.items()}

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except RedisError:
            logger.warning("redis_ping_failed", exc_info=True)
            return False

    async def close(self) -> None:
        await self._client.aclose()


class InMemoryStore:
    """Process-local store with Redis-compatible semantics.

    No method awaits, so each call is atomic with respect to the event loop.
    ``clock`` returns seconds and drives TTL expiry.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._values: dict[str, object] = {}
        self._expires_at: dict[str, float] = {}

    def _live(self, key: str) -> bool:
        deadline = self._expires_at.get(key)
        if deadline is not None and self._clock() >= deadline:
            self._values.pop(key, None)
            self._expires_at.pop(key, None)
        return key in self._values

    def _expire(self, key: str, ttl_seconds: int | None) -> None:
        if ttl_seconds:
            self._expires_at[key] = self._clock() + ttl_seconds

    async def get(self, key: str) -> str | None:
        if not self._live(key):
            return None
        value = self._values[key]
        if not isinstance(value, str):
            raise StoreError(f"WRONGTYPE {key} does not hold a string")
        return value

    async def set(self, key: str, value: str, ttl_seconds: int | None = None) -> None:
        self._values[key] = value
        self._expires_at.pop(key, None)
        self._expire(key, ttl_seconds)

    async def list_append(
        self, key: str, value: str, max_length: int, ttl_seconds: int | None = None
    ) -> None:
        self._live(key)
        items = self._values.setdefault(key, [])
        if not isinstance(items, list):
            raise StoreError(f"WRONGTYPE {key} does not hold a list")
        items.append(value)
        del items[: max(len(items) - max_length, 0)]
        self._expire(key, ttl_seconds)

    async def list_range(self, key: str) -> list[str]:
        if not self._live(key):
            return []
        items = self._values[key]
        if not isinstance(items, list):
            raise StoreError(f"WRONGTYPE {key} does not hold a list")
        return list(items)

    async def hash_increment(
        self, key: str, fields: Mapping[str, int], ttl_seconds: int | None = None
    ) -> None:
        self._live(key)
        counters = self._values.setdefault(key, {})
        if not isinstance(counters, dict):
            raise StoreError(f"WRONGTYPE {key} does not hold a hash")
        for name, amount in fields.items():
            counters[name] = counters.get(name, 0) + amount
        self._expire(key, ttl_seconds)

    async def hash_get_all(self, key: str) -> dict[str, int]:
        if not self._live(key):
            return {}
        counters = self._values[key]
        if not isinstance(counters, dict):
            raise StoreError(f"WRONGTYPE {key} does not hold a hash")
        return dict(counters)

    async def ping(self) -> bool:
        return True

    async def close(self) -> None:
        self._values.clear()
        self._expires_at.clear()
