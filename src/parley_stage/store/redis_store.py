"""Redis-backed implementation of the key-value store."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Awaitable
from typing import Any, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import TimeoutError as RedisTimeoutError

from .base import KeyValueStore, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RedisKeyValueStore(KeyValueStore):
    """Key-value store talking to Redis through `redis.asyncio`.

    Connection and timeout errors are normalized to `TransientStoreError`.
    The client is created lazily by redis-py, so constructing the store does
    not open a connection.
    """

    def __init__(self, url: str, client: aioredis.Redis | None = None) -> None:
        self.url = url
        self._redis: aioredis.Redis = client or aioredis.from_url(url, decode_responses=True)

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            return await awaitable
        except (RedisConnectionError, RedisTimeoutError, OSError) as err:
            raise TransientStoreError(str(err)) from err

    async def get(self, key: str) -> str | None:
        value: Any = await self._call(self._redis.get(key))
        return value

    async def set(self, key: str, value: str, *, ex: int | None = None) -> None:
        await self._call(self._redis.set(key, value, ex=ex))

    async def set_if_absent(self, key: str, value: str, *, ex: int | None = None) -> bool:
        written = await self._call(self._redis.set(key, value, ex=ex, nx=True))
        return bool(written)

    async def delete(self, key: str) -> None:
        await self._call(self._redis.delete(key))

    async def rpush(self, key: str, value: str) -> int:
        return int(await self._call(self._redis.rpush(key, value)))

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        return list(await self._call(self._redis.lrange(key, start, stop)))

    async def sadd(self, key: str, member: str) -> None:
        await self._call(self._redis.sadd(key, member))

    async def srem(self, key: str, member: str) -> None:
        await self._call(self._redis.srem(key, member))

    async def smembers(self, key: str) -> set[str]:
        return set(await self._call(self._redis.smembers(key)))

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        return int(await self._call(self._redis.hincrby(key, field, amount)))

    async def hset(self, key: str, field: str, value: str) -> None:
        await self._call(self._redis.hset(key, field, value))

    async def hget(self, key: str, field: str) -> str | None:
        value: Any = await self._call(self._redis.hget(key, field))
        return value

    async def hdel(self, key: str, field: str) -> None:
        await self._call(self._redis.hdel(key, field))

    async def hgetall(self, key: str) -> dict[str, str]:
        return dict(await self._call(self._redis.hgetall(key)))

    async def publish(self, channel: str, message: str) -> int:
        return int(await self._call(self._redis.publish(channel, message)))

    async def listen(self, channel: str) -> AsyncIterator[str]:
        pubsub = self._redis.pubsub()
        try:
            await self._call(pubsub.subscribe(channel))
            while True:
                message = await self._call(
                    pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                )
                if message is None:
                    continue
                data = message.get("data")
                if isinstance(data, bytes):
                    data = data.decode("utf-8", errors="replace")
                yield str(data)
        finally:
            try:
                await pubsub.unsubscribe(channel)
                await pubsub.aclose()
            except (RedisConnectionError, RedisTimeoutError, OSError) as err:
                logger.debug("Ignoring pubsub teardown error on %s: %s", channel, err)

    async def close(self) -> None:
        await self._redis.aclose()
