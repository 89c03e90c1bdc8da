"""Chat records and per-chat message logs on the key-value store.

Store layout::

    chat:{chat_id}               JSON chat record
    chat:{chat_id}:messages      append-only list, one JSON message per entry
    chat:{chat_id}:events        notification channel, one publish per append
    message:{message_id}         current version of a message (soft deletes land here)
    user:{username}:chats        set of chat ids the user takes part in
    idempotency:{user}:{key}     message id claimed by a client retry key

Older logs may hold bare message ids instead of JSON objects; those entries
are resolved through ``message:{message_id}``.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable

from pydantic import ValidationError

from parley_stage.core.settings import settings
from parley_stage.db.time import now_ms
from parley_stage.schemas.chat import Chat, LastMessage, Message
from parley_stage.services.chat_identity import participants_of, resolve_chat_id
from parley_stage.services.errors import ForbiddenError, NotFoundError
from parley_stage.services.ids import next_message_id
from parley_stage.services.unread import UnreadCounter
from parley_stage.store import KeyValueStore, TransientStoreError

logger = logging.getLogger(__name__)


def chat_key(chat_id: str) -> str:
    return f"chat:{chat_id}"


def chat_log_key(chat_id: str) -> str:
    return f"chat:{chat_id}:messages"


def chat_events_channel(chat_id: str) -> str:
    return f"chat:{chat_id}:events"


def message_key(message_id: str) -> str:
    return f"message:{message_id}"


def user_chats_key(username: str) -> str:
    return f"user:{username}:chats"


def idempotency_key(username: str, client_id: str) -> str:
    return f"idempotency:{username}:{client_id}"


class MessageStore:
    """Repository for chats and their append-only message logs.

    Appending touches several keys without a transaction. The log entry and
    the message document are written first and together are the durable
    part of a send; the last-message snapshot and the unread counter are
    written afterwards and may lag after a partial failure.
    """

    def __init__(
        self,
        store: KeyValueStore,
        unread: UnreadCounter | None = None,
        *,
        id_factory: Callable[[], tuple[str, int]] = next_message_id,
        clock: Callable[[], int] = now_ms,
        read_attempts: int | None = None,
        retry_base_delay: float | None = None,
    ) -> None:
        self.store = store
        self.unread = unread or UnreadCounter(store)
        self._id_factory = id_factory
        self._clock = clock
        self._read_attempts = max(1, read_attempts or settings.history_read_attempts)
        self._retry_base_delay = (
            settings.history_retry_base_delay if retry_base_delay is None else retry_base_delay
        )

    # --- Chats -----------------------------------------------------------------------
    async def get_chat(self, chat_id: str) -> Chat | None:
        """Return the chat record for `chat_id`, or None."""
        raw = await self.store.get(chat_key(chat_id))
        if raw is None:
            return None
        return Chat.model_validate_json(raw)

    async def get_or_create_chat(self, user_a: str, user_b: str) -> Chat:
        """Return the chat between two users, creating it on first contact.

        Concurrent first contact is safe: the record is claimed with
        set-if-absent, so every caller ends up reading the same record.
        """
        chat_id = resolve_chat_id(user_a, user_b)
        chat = await self.get_chat(chat_id)
        if chat is None:
            chat = Chat(id=chat_id, participants=participants_of(chat_id), created_at=self._clock())
            created = await self.store.set_if_absent(chat_key(chat_id), chat.model_dump_json())
            if created:
                logger.info("Created chat %s", chat_id)
            else:
                chat = await self.get_chat(chat_id) or chat

        # Membership is re-added on every call so an interrupted first contact
        # is repaired by the next send.
        for username in chat.participants:
            await self.store.sadd(user_chats_key(username), chat_id)
        return chat

    async def list_user_chats(self, username: str) -> list[Chat]:
        """Return every chat the user participates in, in no particular order."""
        chat_ids = await self.store.smembers(user_chats_key(username))
        chats = await asyncio.gather(*(self.get_chat(chat_id) for chat_id in chat_ids))
        return [chat for chat in chats if chat is not None]

    # --- Writes ----------------------------------------------------------------------
    async def append(self, message: Message) -> Message:
        """Append `message` to its chat log and update derived state.

        Raises:
            TransientStoreError: If the log entry or the message document could
                not be written. A retry with the same client id completes the
                write. Nothing after that point raises.
        """
        document = message.model_dump_json()
        await self.store.rpush(chat_log_key(message.chat_id), document)
        await self.store.set(message_key(message.id), document, ex=settings.message_ttl_seconds)

        try:
            await self._update_snapshot(message)
        except TransientStoreError as err:
            logger.warning("Failed to update last message of %s: %s", message.chat_id, err)

        recipient = _recipient_of(message)
        if recipient is not None:
            try:
                await self.unread.increment(recipient, message.chat_id)
            except TransientStoreError as err:
                logger.warning(
                    "Unread increment for %s in %s failed; count may lag until reconciled: %s",
                    recipient,
                    message.chat_id,
                    err,
                )

        try:
            await self.store.publish(chat_events_channel(message.chat_id), message.id)
        except TransientStoreError as err:
            logger.debug("Notification for %s not published: %s", message.id, err)
        return message

    async def _update_snapshot(self, message: Message) -> None:
        chat = await self.get_chat(message.chat_id)
        if chat is None:
            return
        current = chat.last_message
        if current is not None and current.timestamp > message.timestamp:
            return
        chat.last_message = LastMessage(
            text=message.text,
            author=message.author,
            timestamp=message.timestamp,
        )
        await self.store.set(chat_key(chat.id), chat.model_dump_json())

    async def send(
        self,
        author: str,
        recipient: str,
        text: str,
        *,
        client_id: str | None = None,
    ) -> Message:
        """Create and append a message from `author` to `recipient`.

        When `client_id` is given, a retried send with the same key returns the
        message stored by the first attempt instead of appending a duplicate.
        """
        chat = await self.get_or_create_chat(author, recipient)
        message_id, timestamp = self._id_factory()

        if client_id:
            claim = idempotency_key(author, client_id)
            claimed = await self.store.set_if_absent(
                claim, message_id, ex=settings.idempotency_ttl_seconds
            )
            if not claimed:
                previous_id = await self.store.get(claim)
                previous = await self.get_message(previous_id) if previous_id else None
                if previous is not None:
                    logger.info("Duplicate send %s from %s suppressed", client_id, author)
                    return previous
                # The first attempt claimed the key but failed before storing its
                # message; reuse its id so readers collapse both log entries.
                message_id = previous_id or message_id

        message = Message(
            id=message_id,
            chat_id=chat.id,
            author=author,
            text=text,
            timestamp=timestamp,
        )
        return await self.append(message)

    async def soft_delete(self, message_id: str, requester: str) -> bool:
        """Replace a message's text with the placeholder and flag it deleted.

        Returns False without changing anything unless the message exists and
        `requester` is its author. The entry keeps its id and log position.
        """
        message = await self.get_message(message_id)
        if message is None or message.author != requester:
            return False
        message.text = settings.deleted_message_placeholder
        message.is_deleted = True
        await self.store.set(
            message_key(message_id), message.model_dump_json(), ex=settings.message_ttl_seconds
        )
        logger.info("Message %s soft-deleted by %s", message_id, requester)

        chat = await self.get_chat(message.chat_id)
        snapshot = chat.last_message if chat is not None else None
        if (
            chat is not None
            and snapshot is not None
            and snapshot.timestamp == message.timestamp
            and snapshot.author == message.author
        ):
            snapshot.text = message.text
            await self.store.set(chat_key(chat.id), chat.model_dump_json())
        return True

    async def delete_message(self, message_id: str, requester: str) -> None:
        """Soft-delete a message on behalf of `requester`.

        Raises:
            NotFoundError: If the message does not exist.
            ForbiddenError: If `requester` did not author it.
        """
        message = await self.get_message(message_id)
        if message is None:
            raise NotFoundError("Message not found")
        if message.author != requester:
            raise ForbiddenError("You can only delete your own messages")
        if not await self.soft_delete(message_id, requester):
            raise NotFoundError("Message not found")

    # --- Reads -----------------------------------------------------------------------
    async def get_message(self, message_id: str) -> Message | None:
        """Return a single message by id, or None."""
        raw = await self.store.get(message_key(message_id))
        if raw is None:
            return None
        try:
            return Message.model_validate_json(raw)
        except ValidationError:
            logger.warning("Discarding malformed message document %s", message_id)
            return None

    async def list_messages(self, chat_id: str, limit: int | None = None) -> list[Message]:
        """Return the chat's non-expired messages in ascending timestamp order.

        Transient store failures retry the whole read with exponential backoff.
        After the final attempt fails an empty list is returned; this method
        never raises to the caller.
        """
        for attempt in range(self._read_attempts):
            try:
                messages = await self._read_log(chat_id)
            except TransientStoreError as err:
                logger.warning(
                    "Reading log of %s failed on attempt %d/%d: %s",
                    chat_id,
                    attempt + 1,
                    self._read_attempts,
                    err,
                )
                if attempt < self._read_attempts - 1:
                    await asyncio.sleep(self._retry_base_delay * (2**attempt))
                continue
            if limit is not None and limit >= 0:
                return messages[-limit:] if limit else []
            return messages

        logger.error("Giving up on log of %s after %d attempts", chat_id, self._read_attempts)
        return []

    async def _read_log(self, chat_id: str) -> list[Message]:
        entries = await self.store.lrange(chat_log_key(chat_id), 0, -1)
        resolved = await asyncio.gather(*(self._resolve_entry(entry) for entry in entries))

        ttl = settings.message_ttl_seconds
        cutoff = self._clock() - ttl * 1000 if ttl else None
        seen: set[str] = set()
        messages: list[Message] = []
        for message in resolved:
            if message is None or message.id in seen:
                continue
            if cutoff is not None and message.timestamp < cutoff:
                continue
            seen.add(message.id)
            messages.append(message)
        # Append order is not trusted: retried writes can land out of order.
        messages.sort(key=lambda m: (m.timestamp, m.id))
        return messages

    async def _resolve_entry(self, entry: str) -> Message | None:
        if not entry.startswith("{"):
            return await self.get_message(entry)
        try:
            logged = Message.model_validate(json.loads(entry))
        except (ValueError, ValidationError):
            logger.warning("Skipping malformed inline log entry")
            return None
        # The standalone document carries later edits such as soft deletes.
        current = await self.get_message(logged.id)
        return current or logged

    async def reconcile_unread(self, username: str, chat_id: str) -> int:
        """Recompute `username`'s unread count for `chat_id` from the log."""
        messages = await self.list_messages(chat_id)
        return await self.unread.reconcile(username, chat_id, messages)


def _recipient_of(message: Message) -> str | None:
    try:
        first, second = participants_of(message.chat_id)
    except ValueError:
        return None
    if message.author == first:
        return second
    if message.author == second:
        return first
    return None
