# tests/store/test_memory_store.py
"""Tests for the in-process key-value store."""

import asyncio

import pytest

from parley_stage.store import InMemoryKeyValueStore


@pytest.mark.asyncio
async def test_strings_and_set_if_absent(kv_store: InMemoryKeyValueStore) -> None:
    assert await kv_store.get("k") is None
    assert await kv_store.set_if_absent("k", "first") is True
    assert await kv_store.set_if_absent("k", "second") is False
    assert await kv_store.get("k") == "first"

    await kv_store.delete("k")
    assert await kv_store.get("k") is None


@pytest.mark.asyncio
async def test_expiry() -> None:
    now = [100.0]
    store = InMemoryKeyValueStore(clock=lambda: now[0])
    await store.set("k", "v", ex=10)
    assert await store.get("k") == "v"

    now[0] = 111.0
    assert await store.get("k") is None
    assert await store.set_if_absent("k", "again") is True


@pytest.mark.asyncio
async def test_lrange_uses_inclusive_redis_indexes(kv_store: InMemoryKeyValueStore) -> None:
    for value in "abcde":
        await kv_store.rpush("log", value)

    assert await kv_store.lrange("log", 0, -1) == list("abcde")
    assert await kv_store.lrange("log", 1, 2) == ["b", "c"]
    assert await kv_store.lrange("log", -2, -1) == ["d", "e"]
    assert await kv_store.lrange("missing", 0, -1) == []


@pytest.mark.asyncio
async def test_sets_and_hashes(kv_store: InMemoryKeyValueStore) -> None:
    await kv_store.sadd("s", "x")
    await kv_store.sadd("s", "x")
    await kv_store.sadd("s", "y")
    await kv_store.srem("s", "y")
    assert await kv_store.smembers("s") == {"x"}

    assert await kv_store.hincrby("h", "f") == 1
    assert await kv_store.hincrby("h", "f", 2) == 3
    await kv_store.hset("h", "g", "v")
    assert await kv_store.hgetall("h") == {"f": "3", "g": "v"}
    await kv_store.hdel("h", "f")
    assert await kv_store.hget("h", "f") is None


@pytest.mark.asyncio
async def test_publish_reaches_listener(kv_store: InMemoryKeyValueStore) -> None:
    received: list[str] = []

    async def _listen() -> None:
        async for payload in kv_store.listen("chan"):
            received.append(payload)
            return

    task = asyncio.create_task(_listen())
    await asyncio.sleep(0)
    assert await kv_store.publish("chan", "hello") == 1
    await asyncio.wait_for(task, timeout=1.0)

    assert received == ["hello"]
    assert await kv_store.publish("chan", "nobody") == 0
