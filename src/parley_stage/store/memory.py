"""In-process implementation of the key-value store.

Used by the test-suite and for single-node development runs. State lives in
plain dictionaries guarded by a lock, mirroring the single-key atomicity of
the Redis backend.
"""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from collections.abc import AsyncIterator, Callable
from threading import Lock

from .base import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed key-value store with Redis-like semantics."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = Lock()
        self._strings: dict[str, str] = {}
        self._expiry: dict[str, float] = {}
        self._lists: dict[str, list[str]] = defaultdict(list)
        self._sets: dict[str, set[str]] = defaultdict(set)
        self._hashes: dict[str, dict[str, str]] = defaultdict(dict)
        self._listeners: dict[str, list[tuple[asyncio.AbstractEventLoop, asyncio.Queue[str]]]] = (
            defaultdict(list)
        )

    def _expire_locked(self, key: str) -> None:
        deadline = self._expiry.get(key)
        if deadline is not None and deadline <= self._clock():
            self._strings.pop(key, None)
            self._expiry.pop(key, None)

    def _store_locked(self, key: str, value: str, ex: int | None) -> None:
        self._strings[key] = value
        if ex is not None and ex > 0:
            self._expiry[key] = self._clock() + ex
        else:
            self._expiry.pop(key, None)

    async def get(self, key: str) -> str | None:
        with self._lock:
            self._expire_locked(key)
            return self._strings.get(key)

    async def set(self, key: str, value: str, *, ex: int | None = None) -> None:
        with self._lock:
            self._store_locked(key, value, ex)

    async def set_if_absent(self, key: str, value: str, *, ex: int | None = None) -> bool:
        with self._lock:
            self._expire_locked(key)
            if key in self._strings:
                return False
            self._store_locked(key, value, ex)
            return True

    async def delete(self, key: str) -> None:
        with self._lock:
            self._strings.pop(key, None)
            self._expiry.pop(key, None)
            self._lists.pop(key, None)
            self._sets.pop(key, None)
            self._hashes.pop(key, None)

    async def rpush(self, key: str, value: str) -> int:
        with self._lock:
            items = self._lists[key]
            items.append(value)
            return len(items)

    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        with self._lock:
            items = list(self._lists.get(key, ()))
        length = len(items)
        if start < 0:
            start = max(length + start, 0)
        if stop < 0:
            stop = length + stop
        return items[start : stop + 1]

    async def sadd(self, key: str, member: str) -> None:
        with self._lock:
            self._sets[key].add(member)

    async def srem(self, key: str, member: str) -> None:
        with self._lock:
            members = self._sets.get(key)
            if members is not None:
                members.discard(member)

    async def smembers(self, key: str) -> set[str]:
        with self._lock:
            return set(self._sets.get(key, ()))

    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        with self._lock:
            fields = self._hashes[key]
            value = int(fields.get(field, "0")) + amount
            fields[field] = str(value)
            return value

    async def hset(self, key: str, field: str, value: str) -> None:
        with self._lock:
            self._hashes[key][field] = value

    async def hget(self, key: str, field: str) -> str | None:
        with self._lock:
            return self._hashes.get(key, {}).get(field)

    async def hdel(self, key: str, field: str) -> None:
        with self._lock:
            fields = self._hashes.get(key)
            if fields is not None:
                fields.pop(field, None)

    async def hgetall(self, key: str) -> dict[str, str]:
        with self._lock:
            return dict(self._hashes.get(key, {}))

    async def publish(self, channel: str, message: str) -> int:
        with self._lock:
            listeners = list(self._listeners.get(channel, ()))
        for loop, queue in listeners:
            loop.call_soon_threadsafe(queue.put_nowait, message)
        return len(listeners)

    async def listen(self, channel: str) -> AsyncIterator[str]:
        queue: asyncio.Queue[str] = asyncio.Queue()
        entry = (asyncio.get_running_loop(), queue)
        with self._lock:
            self._listeners[channel].append(entry)
        try:
            while True:
                yield await queue.get()
        finally:
            with self._lock:
                listeners = self._listeners.get(channel, [])
                if entry in listeners:
                    listeners.remove(entry)
