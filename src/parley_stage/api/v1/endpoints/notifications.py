# src/parley_stage/api/v1/endpoints/notifications.py
"""Push notification registration."""

import logging

from fastapi import APIRouter

from parley_stage.api.v1.dependencies import CurrentUsernameDep, StoreDep
from parley_stage.schemas.common import SuccessResponse
from parley_stage.schemas.user import PushTokenRequest

router = APIRouter(prefix="/notifications", tags=["notifications"])
logger = logging.getLogger(__name__)


def push_token_key(username: str) -> str:
    return f"push_token:{username}"


@router.post("/register", response_model=SuccessResponse)
async def register_push_token(
    payload: PushTokenRequest,
    username: CurrentUsernameDep,
    store: StoreDep,
) -> SuccessResponse:
    """Remember the caller's device token; a later registration replaces it."""
    await store.set(push_token_key(username), payload.push_token)
    logger.info("Registered push token for %s", username)
    return SuccessResponse()
