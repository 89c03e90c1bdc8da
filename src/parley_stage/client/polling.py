"""Interval polling of the chat history."""

from __future__ import annotations

import asyncio
import logging

from parley_stage.schemas.chat import Message

from .api import ParleyClient
from .errors import AuthenticationError, ParleyClientError
from .inbox import MessageCallback, MessageInbox

logger = logging.getLogger(__name__)


class PollingChatClient:
    """Fetches `/history` on a fixed interval and surfaces unseen messages."""

    def __init__(
        self,
        api: ParleyClient,
        other_user: str,
        *,
        interval_seconds: float = 5.0,
        on_message: MessageCallback | None = None,
        notify: MessageCallback | None = None,
    ) -> None:
        self.api = api
        self.other_user = other_user
        self.interval_seconds = interval_seconds
        self.inbox = MessageInbox(api, other_user, on_message=on_message, notify=notify)
        self._stopped = asyncio.Event()

    @property
    def watermark(self) -> int:
        return self.inbox.watermark

    async def poll_once(self) -> list[Message]:
        """Fetch the history once and return the messages not seen before."""
        history = await self.api.history(self.other_user)
        return await self.inbox.accept(history)

    async def run(self) -> None:
        """Poll until `stop` is called. Authentication failures end the loop."""
        self._stopped.clear()
        while not self._stopped.is_set():
            try:
                await self.poll_once()
            except AuthenticationError:
                raise
            except ParleyClientError as err:
                logger.warning("Polling %s failed: %s", self.other_user, err)
            try:
                await asyncio.wait_for(self._stopped.wait(), timeout=self.interval_seconds)
            except TimeoutError:
                pass

    def stop(self) -> None:
        self._stopped.set()
