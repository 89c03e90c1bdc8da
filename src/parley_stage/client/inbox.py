"""Client-side bookkeeping shared by the polling and streaming clients."""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable

from parley_stage.schemas.chat import Message

from .api import ParleyClient
from .errors import ParleyClientError

logger = logging.getLogger(__name__)

MessageCallback = Callable[[Message], Awaitable[None] | None]


async def _call(callback: MessageCallback | None, message: Message) -> None:
    if callback is None:
        return
    result = callback(message)
    if inspect.isawaitable(result):
        await result


class MessageInbox:
    """Deduplicates incoming messages and acknowledges the ones we received.

    Both delivery modes may hand the same message over more than once, so
    every message passes through `accept`, which surfaces each id exactly once.
    """

    def __init__(
        self,
        api: ParleyClient,
        other_user: str,
        *,
        on_message: MessageCallback | None = None,
        notify: MessageCallback | None = None,
    ) -> None:
        self.api = api
        self.other_user = other_user
        self.on_message = on_message
        self.notify = notify
        self.seen: set[str] = set()
        self.watermark = 0

    async def accept(self, messages: Iterable[Message]) -> list[Message]:
        """Surface the unseen messages in order and return them."""
        fresh: list[Message] = []
        for message in sorted(messages, key=lambda m: (m.timestamp, m.id)):
            if message.id in self.seen:
                continue
            self.seen.add(message.id)
            self.watermark = max(self.watermark, message.timestamp)
            fresh.append(message)

        for message in fresh:
            await _call(self.on_message, message)

        incoming = [message for message in fresh if message.author == self.other_user]
        if incoming:
            try:
                await self.api.mark_read(self.other_user)
            except ParleyClientError as err:
                logger.warning("Read acknowledgement for %s failed: %s", self.other_user, err)
            for message in incoming:
                await _call(self.notify, message)
        return fresh
