"""Per-recipient unread counters."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

from parley_stage.db.time import now_ms
from parley_stage.schemas.chat import Message
from parley_stage.store import KeyValueStore

logger = logging.getLogger(__name__)


def unread_key(username: str) -> str:
    return f"user:{username}:unread"


def last_read_key(username: str) -> str:
    return f"user:{username}:last_read"


class UnreadCounter:
    """Unread message counts kept as one hash per recipient, keyed by chat id.

    The counter is a cache of "logged messages since last read". Alongside it
    a last-read watermark is recorded on every reset so the count can be
    recomputed from the chat log when an increment was missed.
    """

    def __init__(self, store: KeyValueStore, clock: Callable[[], int] = now_ms) -> None:
        self.store = store
        self._clock = clock

    async def increment(self, recipient: str, chat_id: str) -> int:
        """Add one unread message for `recipient` in `chat_id`."""
        return await self.store.hincrby(unread_key(recipient), chat_id, 1)

    async def reset(self, recipient: str, chat_id: str) -> None:
        """Mark every message in `chat_id` as read by `recipient`."""
        await self.store.hdel(unread_key(recipient), chat_id)
        await self.store.hset(last_read_key(recipient), chat_id, str(self._clock()))

    async def get(self, recipient: str, chat_id: str) -> int:
        """Return the unread count for a single chat."""
        raw = await self.store.hget(unread_key(recipient), chat_id)
        return _as_count(raw)

    async def get_all(self, recipient: str) -> dict[str, int]:
        """Return unread counts for every chat with at least one entry.

        Chats missing from the mapping have zero unread messages.
        """
        raw = await self.store.hgetall(unread_key(recipient))
        return {chat_id: _as_count(value) for chat_id, value in raw.items()}

    async def last_read_at(self, recipient: str, chat_id: str) -> int:
        """Return the timestamp of the last reset, or 0 if never read."""
        raw = await self.store.hget(last_read_key(recipient), chat_id)
        try:
            return int(raw) if raw is not None else 0
        except ValueError:
            return 0

    async def reconcile(self, recipient: str, chat_id: str, messages: Iterable[Message]) -> int:
        """Recompute the unread count for `chat_id` from its message log.

        Counts messages authored by someone else that are newer than the
        recipient's last-read watermark, stores the result and returns it.
        """
        watermark = await self.last_read_at(recipient, chat_id)
        count = sum(
            1
            for message in messages
            if message.author != recipient and message.timestamp > watermark
        )
        current = await self.get(recipient, chat_id)
        if count != current:
            logger.info(
                "Reconciled unread count for %s in %s: %d -> %d",
                recipient,
                chat_id,
                current,
                count,
            )
        if count:
            await self.store.hset(unread_key(recipient), chat_id, str(count))
        else:
            await self.store.hdel(unread_key(recipient), chat_id)
        return count


def _as_count(raw: str | None) -> int:
    if raw is None:
        return 0
    try:
        return max(int(raw), 0)
    except ValueError:
        return 0
