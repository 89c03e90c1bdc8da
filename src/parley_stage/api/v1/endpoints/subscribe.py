# src/parley_stage/api/v1/endpoints/subscribe.py
"""Server-Sent Events subscription endpoint."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Query, status
from fastapi.responses import StreamingResponse

from parley_stage.api.v1.dependencies import DeliveryConfigDep, MessageStoreDep
from parley_stage.core.security import verify_token
from parley_stage.services.chat_identity import resolve_chat_id
from parley_stage.services.delivery import SSE_HEADERS, ChatSubscription

router = APIRouter(tags=["delivery"])
logger = logging.getLogger(__name__)


@router.get("/subscribe")
async def subscribe(
    messages: MessageStoreDep,
    config: DeliveryConfigDep,
    token: Annotated[str | None, Query()] = None,
    other_user: Annotated[str | None, Query(alias="otherUser")] = None,
    last_event_id: Annotated[str | None, Header(alias="Last-Event-ID")] = None,
) -> StreamingResponse:
    """Stream the chat with `otherUser` as Server-Sent Events.

    EventSource cannot send headers, so the token travels as a query
    parameter. Reconnecting clients may send `Last-Event-ID` to skip the
    part of the backlog they already hold.
    """
    username = verify_token(token) if token else None
    if username is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    if not other_user:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="otherUser is required",
        )
    try:
        chat_id = resolve_chat_id(username, other_user)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err

    subscription = ChatSubscription(
        messages,
        chat_id,
        username,
        config=config,
        resume_after=last_event_id or None,
    )
    logger.info("Subscriber %s opened stream for %s", username, chat_id)
    # Starlette cancels the generator when the client goes away, which runs
    # the subscription's cleanup.
    return StreamingResponse(
        subscription.stream(),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
