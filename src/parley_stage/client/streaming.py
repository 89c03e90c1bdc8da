"""Server-Sent Events consumer with reconnect."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import httpx
from pydantic import ValidationError

from parley_stage.schemas.chat import Message

from .api import ParleyClient
from .errors import AuthenticationError, ParleyClientError
from .inbox import MessageCallback, MessageInbox
from .sse import SSEParser

logger = logging.getLogger(__name__)


class StreamingChatClient:
    """Follows `/subscribe` for one chat, reconnecting with linear backoff.

    The n-th consecutive reconnect waits `backoff_seconds * n`. The counter
    resets whenever a connection opens, and after `max_attempts` failed
    reconnects in a row `run` gives up by raising the last error.
    """

    def __init__(
        self,
        api: ParleyClient,
        other_user: str,
        *,
        on_message: MessageCallback | None = None,
        notify: MessageCallback | None = None,
        backoff_seconds: float = 3.0,
        max_attempts: int = 5,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.api = api
        self.other_user = other_user
        self.inbox = MessageInbox(api, other_user, on_message=on_message, notify=notify)
        self.backoff_seconds = backoff_seconds
        self.max_attempts = max_attempts
        self.last_event_id: str | None = None
        self.attempts = 0
        self._sleep = sleep
        self._stopped = False

    async def consume_once(self) -> int:
        """Read one connection until the server ends it. Returns messages surfaced."""
        parser = SSEParser()
        surfaced = 0
        async with self.api.open_stream(self.other_user, self.last_event_id) as response:
            self.attempts = 0
            logger.info("Stream for %s opened", self.other_user)
            async for line in response.aiter_lines():
                if self._stopped:
                    break
                event = parser.feed(line.rstrip("\r"))
                if event is None or event.event != "message":
                    continue
                try:
                    message = Message.model_validate_json(event.data)
                except ValidationError:
                    logger.warning("Ignoring malformed event %s", event.id)
                    continue
                if event.id:
                    self.last_event_id = event.id
                surfaced += len(await self.inbox.accept([message]))
        return surfaced

    async def run(self) -> None:
        """Consume the stream until `stop` is called or reconnects run out."""
        self._stopped = False
        while not self._stopped:
            last_error: Exception | None = None
            try:
                await self.consume_once()
            except AuthenticationError:
                raise
            except (ParleyClientError, httpx.HTTPError) as err:
                logger.warning("Stream for %s dropped: %s", self.other_user, err)
                last_error = err
            if self._stopped:
                break
            if self.attempts >= self.max_attempts:
                raise ParleyClientError(
                    f"Giving up on {self.other_user} after {self.attempts} reconnects"
                ) from last_error
            self.attempts += 1
            delay = self.backoff_seconds * self.attempts
            logger.info(
                "Reconnecting to %s in %.1fs (attempt %d)", self.other_user, delay, self.attempts
            )
            await self._sleep(delay)

    def stop(self) -> None:
        self._stopped = True
