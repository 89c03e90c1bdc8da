# tests/store/test_redis_store.py
"""Tests for the Redis store adapter against a mocked client."""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from parley_stage.core.settings import Settings
from parley_stage.store import (
    InMemoryKeyValueStore,
    RedisKeyValueStore,
    TransientStoreError,
    create_store,
)


@pytest.fixture()
def redis_client(mocker):
    return mocker.AsyncMock()


@pytest.mark.asyncio
async def test_set_if_absent_uses_nx(redis_client) -> None:
    redis_client.set.return_value = True
    store = RedisKeyValueStore("redis://unused", client=redis_client)

    assert await store.set_if_absent("k", "v", ex=30) is True
    redis_client.set.assert_awaited_once_with("k", "v", ex=30, nx=True)

    redis_client.set.return_value = None
    assert await store.set_if_absent("k", "v") is False


@pytest.mark.asyncio
async def test_connection_errors_become_transient(redis_client) -> None:
    redis_client.rpush.side_effect = RedisConnectionError("refused")
    store = RedisKeyValueStore("redis://unused", client=redis_client)

    with pytest.raises(TransientStoreError):
        await store.rpush("log", "entry")


@pytest.mark.asyncio
async def test_hash_and_set_results_are_normalized(redis_client) -> None:
    redis_client.hgetall.return_value = {"alice:bob": "2"}
    redis_client.smembers.return_value = ["a", "b"]
    redis_client.hincrby.return_value = "3"
    store = RedisKeyValueStore("redis://unused", client=redis_client)

    assert await store.hgetall("h") == {"alice:bob": "2"}
    assert await store.smembers("s") == {"a", "b"}
    assert await store.hincrby("h", "alice:bob") == 3


def test_create_store_selects_backend() -> None:
    memory = create_store(Settings(SECRET_KEY="x", STORE_BACKEND="memory"))
    redis_backed = create_store(
        Settings(SECRET_KEY="x", STORE_BACKEND="redis", REDIS_URL="redis://localhost:6390")
    )

    assert isinstance(memory, InMemoryKeyValueStore)
    assert isinstance(redis_backed, RedisKeyValueStore)
    assert redis_backed.url == "redis://localhost:6390"
