# src/parley_stage/api/v1/endpoints/chats.py
"""Chat list, history and message endpoints for the Parley API."""

from __future__ import annotations

import asyncio
import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from parley_stage.api.v1.dependencies import (
    CurrentUsernameDep,
    FolderIndexDep,
    MessageStoreDep,
    SessionDep,
    UnreadCounterDep,
)
from parley_stage.core.settings import settings
from parley_stage.schemas.chat import (
    ChatListResponse,
    ChatSummary,
    DeleteMessageRequest,
    HistoryResponse,
    MarkReadRequest,
    SendMessageRequest,
    SendMessageResponse,
)
from parley_stage.schemas.common import SuccessResponse
from parley_stage.services import users as user_service
from parley_stage.services.chat_identity import resolve_chat_id
from parley_stage.services.errors import ForbiddenError, NotFoundError
from parley_stage.store import TransientStoreError

router = APIRouter(tags=["chats"])
logger = logging.getLogger(__name__)


def _chat_id_or_400(username: str, other_user: str) -> str:
    try:
        return resolve_chat_id(username, other_user)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err


def _store_unavailable(err: TransientStoreError) -> HTTPException:
    logger.error("Chat store unavailable: %s", err)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Chat store temporarily unavailable",
    )


@router.get("/chats", response_model=ChatListResponse)
async def list_chats(
    username: CurrentUsernameDep,
    messages: MessageStoreDep,
    unread: UnreadCounterDep,
    folders: FolderIndexDep,
    reconcile: bool = Query(False, description="Recompute unread counts from the logs"),
) -> ChatListResponse:
    """List the caller's chats with unread counts, most recent activity first."""
    try:
        chats = await messages.list_user_chats(username)
        if reconcile:
            await asyncio.gather(
                *(messages.reconcile_unread(username, chat.id) for chat in chats)
            )
        counts = await unread.get_all(username)

        folder_of: dict[str, str] = {}
        for folder in await folders.list_for_user(username):
            for chat_id in await folders.list_chats_in(folder.id):
                folder_of.setdefault(chat_id, folder.id)
    except TransientStoreError as err:
        raise _store_unavailable(err) from err

    summaries = [
        ChatSummary(
            **chat.model_dump(),
            other_user=chat.other_participant(username),
            unread_count=counts.get(chat.id, 0),
            folder_id=folder_of.get(chat.id),
        )
        for chat in chats
    ]
    summaries.sort(key=lambda chat: chat.last_activity, reverse=True)
    return ChatListResponse(chats=summaries)


@router.get("/history", response_model=HistoryResponse)
async def get_history(
    username: CurrentUsernameDep,
    messages: MessageStoreDep,
    other_user: Annotated[str, Query(alias="otherUser", min_length=1)],
    limit: Annotated[int | None, Query(ge=1, le=1000)] = None,
) -> HistoryResponse:
    """Return the ordered message log shared with `otherUser`."""
    chat_id = _chat_id_or_400(username, other_user)
    log = await messages.list_messages(chat_id, limit=limit or settings.history_default_limit)
    return HistoryResponse(chat_id=chat_id, messages=log)


@router.post("/send", response_model=SendMessageResponse)
async def send_message(
    payload: SendMessageRequest,
    username: CurrentUsernameDep,
    messages: MessageStoreDep,
    db: SessionDep,
) -> SendMessageResponse:
    """Append a message to the chat with `otherUser`, creating the chat if needed."""
    text = payload.text.strip()
    if not text:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message cannot be empty",
        )
    if len(text) > settings.message_max_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Message exceeds {settings.message_max_length} characters",
        )

    _chat_id_or_400(username, payload.other_user)
    if user_service.get_user(db, payload.other_user) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Recipient not found",
        )

    try:
        message = await messages.send(
            username,
            payload.other_user,
            text,
            client_id=payload.client_id,
        )
    except TransientStoreError as err:
        raise _store_unavailable(err) from err

    return SendMessageResponse(message=message)


@router.post("/delete", response_model=SuccessResponse)
async def delete_message(
    payload: DeleteMessageRequest,
    username: CurrentUsernameDep,
    messages: MessageStoreDep,
) -> SuccessResponse:
    """Soft-delete one of the caller's own messages."""
    try:
        await messages.delete_message(payload.message_id, username)
    except NotFoundError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(err),
        ) from err
    except ForbiddenError as err:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(err),
        ) from err
    except TransientStoreError as err:
        raise _store_unavailable(err) from err
    return SuccessResponse()


@router.post("/mark-read", response_model=SuccessResponse)
async def mark_read(
    payload: MarkReadRequest,
    username: CurrentUsernameDep,
    unread: UnreadCounterDep,
) -> SuccessResponse:
    """Reset the caller's unread counter for the chat with `otherUser`."""
    chat_id = _chat_id_or_400(username, payload.other_user)
    try:
        await unread.reset(username, chat_id)
    except TransientStoreError as err:
        raise _store_unavailable(err) from err
    return SuccessResponse()
