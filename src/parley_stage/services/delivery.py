"""Server-Sent Events delivery of chat messages.

A `ChatSubscription` serves one (subscriber, chat) connection. It replays the
chat backlog, then watches the log for new entries and streams them as SSE
events. New entries are detected by re-reading the log on a fixed interval;
when the store supports notifications, an append wakes the check loop early
so the interval only bounds the worst-case latency.

Lifecycle::

    CONNECTING -> STREAMING -> {IDLE <-> FLUSHING} -> CLOSED

`CLOSED` is entered exactly once, on client cancellation, the session
ceiling, a write failure, or a detected disconnect. Every background task is
cancelled on the way in.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass
from enum import Enum

from pydantic import ValidationError

from parley_stage.core.settings import Settings, settings
from parley_stage.db.time import now_ms
from parley_stage.schemas.chat import Message
from parley_stage.services.message_store import MessageStore, chat_events_channel
from parley_stage.store import StoreError

logger = logging.getLogger(__name__)

SSE_HEADERS = {
    "Cache-Control": "no-cache, no-transform",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class SubscriptionState(Enum):
    """States of a single delivery subscription."""

    CONNECTING = "connecting"
    STREAMING = "streaming"
    IDLE = "idle"
    FLUSHING = "flushing"
    CLOSED = "closed"


_TRANSITIONS: dict[SubscriptionState, frozenset[SubscriptionState]] = {
    SubscriptionState.CONNECTING: frozenset({SubscriptionState.STREAMING}),
    SubscriptionState.STREAMING: frozenset({SubscriptionState.IDLE, SubscriptionState.FLUSHING}),
    SubscriptionState.IDLE: frozenset({SubscriptionState.FLUSHING}),
    SubscriptionState.FLUSHING: frozenset({SubscriptionState.IDLE}),
    SubscriptionState.CLOSED: frozenset(),
}


@dataclass(frozen=True)
class DeliveryConfig:
    """Timings for one subscription, in seconds."""

    check_interval: float = 0.5
    keepalive_interval: float = 15.0
    max_session: float = 600.0
    use_notifications: bool = True

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> DeliveryConfig:
        config = config or settings
        return cls(
            check_interval=max(0.01, config.subscribe_check_interval_seconds),
            keepalive_interval=max(0.01, config.subscribe_keepalive_seconds),
            max_session=config.subscribe_max_session_seconds,
            use_notifications=config.subscribe_use_notifications,
        )


def format_event(message: Message) -> str:
    """Encode a message as one SSE event carrying its id."""
    return f"id: {message.id}\ndata: {message.model_dump_json()}\n\n"


def format_comment(text: str) -> str:
    """Encode an SSE comment line; clients ignore these."""
    return f": {text}\n\n"


@dataclass(frozen=True)
class _Frame:
    text: str
    message: Message | None = None


class ChatSubscription:
    """Backlog-then-live message stream for one subscriber of one chat."""

    def __init__(
        self,
        messages: MessageStore,
        chat_id: str,
        subscriber: str,
        *,
        config: DeliveryConfig | None = None,
        resume_after: str | None = None,
        is_disconnected: Callable[[], Awaitable[bool]] | None = None,
    ) -> None:
        self.messages = messages
        self.chat_id = chat_id
        self.subscriber = subscriber
        self.config = config or DeliveryConfig.from_settings()
        self.resume_after = resume_after
        self.state = SubscriptionState.CONNECTING
        # Highest timestamp actually written to the client.
        self.watermark = 0
        # Highest timestamp queued for writing; new entries are selected against it.
        self._horizon = 0
        self._delivered: set[str] = set()
        self._queue: asyncio.Queue[_Frame | None] = asyncio.Queue()
        self._wake = asyncio.Event()
        self._tasks: list[asyncio.Task[None]] = []
        self._is_disconnected = is_disconnected

    @property
    def closed(self) -> bool:
        return self.state is SubscriptionState.CLOSED

    def _transition(self, new_state: SubscriptionState) -> None:
        if self.state is SubscriptionState.CLOSED:
            raise RuntimeError("Subscription is closed")
        if new_state is self.state:
            return
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal transition {self.state.value} -> {new_state.value}")
        self.state = new_state

    # --- Selection -------------------------------------------------------------------
    def _select_new(self, messages: list[Message]) -> list[Message]:
        fresh = [
            message
            for message in messages
            if message.timestamp >= self._horizon and message.id not in self._delivered
        ]
        fresh.sort(key=lambda m: (m.timestamp, m.id))
        return fresh

    def _enqueue(self, message: Message) -> None:
        self._delivered.add(message.id)
        self._horizon = max(self._horizon, message.timestamp)
        self._queue.put_nowait(_Frame(format_event(message), message))

    # --- Lifecycle -------------------------------------------------------------------
    async def _open(self) -> None:
        self._queue.put_nowait(_Frame(format_comment("connected")))
        self._transition(SubscriptionState.STREAMING)

        backlog = await self.messages.list_messages(self.chat_id)
        if self.resume_after is not None:
            backlog = self._skip_resumed(backlog)
        if backlog:
            self._transition(SubscriptionState.FLUSHING)
            for message in backlog:
                if message.id not in self._delivered:
                    self._enqueue(message)
        self._transition(SubscriptionState.IDLE)
        logger.info(
            "Subscription %s/%s replayed %d messages",
            self.subscriber,
            self.chat_id,
            len(backlog),
        )

        self._tasks = [
            asyncio.create_task(self._check_loop()),
            asyncio.create_task(self._keepalive_loop()),
        ]
        if self.config.use_notifications:
            self._tasks.append(asyncio.create_task(self._listen_loop()))

    def _skip_resumed(self, backlog: list[Message]) -> list[Message]:
        for index, message in enumerate(backlog):
            if message.id == self.resume_after:
                for seen in backlog[: index + 1]:
                    self._delivered.add(seen.id)
                self._horizon = message.timestamp
                self.watermark = message.timestamp
                return backlog[index + 1 :]
        return backlog

    async def check_once(self) -> int:
        """Run one check cycle and queue any new messages. Returns how many."""
        if self.closed:
            return 0
        messages = await self.messages.list_messages(self.chat_id)
        fresh = self._select_new(messages)
        if not fresh or self.closed:
            return 0
        self._transition(SubscriptionState.FLUSHING)
        for message in fresh:
            self._enqueue(message)
        self._transition(SubscriptionState.IDLE)
        logger.debug("Subscription %s/%s queued %d new", self.subscriber, self.chat_id, len(fresh))
        return len(fresh)

    async def _check_loop(self) -> None:
        while not self.closed:
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.config.check_interval)
            except TimeoutError:
                pass
            self._wake.clear()

            if self._is_disconnected is not None and await self._is_disconnected():
                logger.info("Subscriber %s disconnected from %s", self.subscriber, self.chat_id)
                self._queue.put_nowait(None)
                return

            try:
                await self.check_once()
            except (StoreError, ValidationError, ValueError) as err:
                logger.error(
                    "Check cycle for %s/%s failed: %s",
                    self.subscriber,
                    self.chat_id,
                    err,
                    exc_info=True,
                )

    async def _keepalive_loop(self) -> None:
        while not self.closed:
            await asyncio.sleep(self.config.keepalive_interval)
            self._queue.put_nowait(_Frame(format_comment(f"keepalive {now_ms()}")))

    async def _listen_loop(self) -> None:
        channel = chat_events_channel(self.chat_id)
        try:
            async for _ in self.messages.store.listen(channel):
                self._wake.set()
        except StoreError as err:
            logger.warning(
                "Notifications unavailable for %s, relying on polling: %s", self.chat_id, err
            )

    async def stream(self) -> AsyncIterator[str]:
        """Yield SSE frames until the subscription ends.

        The watermark advances only after a frame has been handed to the
        transport, so it always reflects what the client actually received.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.max_session
        try:
            await self._open()
            while True:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    break
                try:
                    frame = await asyncio.wait_for(self._queue.get(), timeout=remaining)
                except TimeoutError:
                    break
                if frame is None:
                    break
                yield frame.text
                if frame.message is not None:
                    self.watermark = max(self.watermark, frame.message.timestamp)
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop every background task and enter `CLOSED`. Safe to call twice."""
        if self.closed:
            return
        self.state = SubscriptionState.CLOSED
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(
            "Subscription %s/%s closed after %d messages",
            self.subscriber,
            self.chat_id,
            len(self._delivered),
        )
