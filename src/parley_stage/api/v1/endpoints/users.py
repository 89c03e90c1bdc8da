# src/parley_stage/api/v1/endpoints/users.py
"""User lookup endpoints for the Parley API."""

from typing import Annotated

from fastapi import APIRouter, Query

from parley_stage.api.v1.dependencies import CurrentUsernameDep, SessionDep
from parley_stage.schemas.user import UserSearchResponse
from parley_stage.services import users as user_service

router = APIRouter(prefix="/users", tags=["users"])

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 10


@router.get("/search", response_model=UserSearchResponse)
async def search_users(
    username: CurrentUsernameDep,
    db: SessionDep,
    q: Annotated[str, Query(max_length=64)] = "",
) -> UserSearchResponse:
    """Find other users whose name contains `q`."""
    query = q.strip()
    if len(query) < SEARCH_MIN_LENGTH:
        return UserSearchResponse(users=[])
    found = user_service.search_usernames(db, query, exclude=username, limit=SEARCH_LIMIT)
    return UserSearchResponse(users=list(found))
