"""Abstract key-value store contract used by the chat services.

The chat services only rely on atomic single-key operations. Nothing here
offers multi-key transactions; callers that touch several keys must tolerate
partial application.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class StoreError(RuntimeError):
    """Base exception raised for key-value store failures."""


class TransientStoreError(StoreError):
    """Raised when the store cannot be reached or times out.

    Reads may retry this error locally; writes surface it to the caller.
    """


class KeyValueStore(ABC):
    """Async facade over a Redis-like key-value store."""

    # --- Plain keys ------------------------------------------------------------------
    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Return the string stored at `key`, or None."""

    @abstractmethod
    async def set(self, key: str, value: str, *, ex: int | None = None) -> None:
        """Store `value` at `key`, optionally expiring after `ex` seconds."""

    @abstractmethod
    async def set_if_absent(self, key: str, value: str, *, ex: int | None = None) -> bool:
        """Store `value` only if `key` does not exist. Return True if written."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove `key` if present."""

    # --- Lists -----------------------------------------------------------------------
    @abstractmethod
    async def rpush(self, key: str, value: str) -> int:
        """Append `value` to the tail of the list and return its new length."""

    @abstractmethod
    async def lrange(self, key: str, start: int, stop: int) -> list[str]:
        """Return list items between `start` and `stop` inclusive (Redis semantics)."""

    # --- Sets ------------------------------------------------------------------------
    @abstractmethod
    async def sadd(self, key: str, member: str) -> None:
        """Add `member` to the set at `key`."""

    @abstractmethod
    async def srem(self, key: str, member: str) -> None:
        """Remove `member` from the set at `key`."""

    @abstractmethod
    async def smembers(self, key: str) -> set[str]:
        """Return every member of the set at `key`."""

    # --- Hashes ----------------------------------------------------------------------
    @abstractmethod
    async def hincrby(self, key: str, field: str, amount: int = 1) -> int:
        """Atomically add `amount` to a hash field and return the new value."""

    @abstractmethod
    async def hset(self, key: str, field: str, value: str) -> None:
        """Set a single hash field."""

    @abstractmethod
    async def hget(self, key: str, field: str) -> str | None:
        """Return a single hash field, or None."""

    @abstractmethod
    async def hdel(self, key: str, field: str) -> None:
        """Remove a single hash field."""

    @abstractmethod
    async def hgetall(self, key: str) -> dict[str, str]:
        """Return every field of the hash at `key`."""

    # --- Notifications ---------------------------------------------------------------
    @abstractmethod
    async def publish(self, channel: str, message: str) -> int:
        """Broadcast `message` to current listeners of `channel`.

        Delivery is fire-and-forget: listeners that are not connected at the
        time of publishing never see the message.
        """

    @abstractmethod
    def listen(self, channel: str) -> AsyncIterator[str]:
        """Yield messages published on `channel` until the iterator is closed."""

    async def close(self) -> None:
        """Release any connections held by the store."""
