# src/parley_stage/api/v1/endpoints/folders.py
"""Folder management endpoints for the Parley API."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from parley_stage.api.v1.dependencies import CurrentUsernameDep, FolderIndexDep
from parley_stage.schemas.common import SuccessResponse
from parley_stage.schemas.folder import (
    Folder,
    FolderAssignRequest,
    FolderCreateRequest,
    FolderListResponse,
)
from parley_stage.services.chat_identity import participants_of
from parley_stage.services.errors import ForbiddenError, NotFoundError
from parley_stage.services.folders import FolderIndex
from parley_stage.store import TransientStoreError

router = APIRouter(prefix="/folders", tags=["folders"])
logger = logging.getLogger(__name__)


def _store_unavailable(err: TransientStoreError) -> HTTPException:
    logger.error("Folder store unavailable: %s", err)
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail="Chat store temporarily unavailable",
    )


async def _require_owned(folders: FolderIndex, username: str, folder_id: str) -> Folder:
    try:
        return await folders.require_owned(username, folder_id)
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


def _require_participant(username: str, chat_id: str) -> None:
    try:
        participants = participants_of(chat_id)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid chat id",
        ) from err
    if username not in participants:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not a participant of this chat",
        )


@router.get("", response_model=FolderListResponse)
async def list_folders(
    username: CurrentUsernameDep,
    folders: FolderIndexDep,
) -> FolderListResponse:
    """List the caller's folders and the chats filed in each."""
    try:
        owned = await folders.list_for_user(username)
        chats = {folder.id: await folders.list_chats_in(folder.id) for folder in owned}
    except TransientStoreError as err:
        raise _store_unavailable(err) from err
    return FolderListResponse(folders=owned, chats=chats)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=Folder)
async def create_folder(
    payload: FolderCreateRequest,
    username: CurrentUsernameDep,
    folders: FolderIndexDep,
) -> Folder:
    """Create a new folder owned by the caller."""
    name = payload.name.strip()
    if not name:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Folder name required",
        )
    try:
        return await folders.create(username, name)
    except TransientStoreError as err:
        raise _store_unavailable(err) from err


@router.delete("", response_model=SuccessResponse)
async def delete_folder(
    username: CurrentUsernameDep,
    folders: FolderIndexDep,
    folder_id: Annotated[str, Query(alias="id", min_length=1)],
) -> SuccessResponse:
    """Delete one of the caller's folders; its chats return to the main list."""
    try:
        await _require_owned(folders, username, folder_id)
        await folders.delete(username, folder_id)
    except TransientStoreError as err:
        raise _store_unavailable(err) from err
    return SuccessResponse()


@router.post("/assign", response_model=SuccessResponse)
async def assign_chat(
    payload: FolderAssignRequest,
    username: CurrentUsernameDep,
    folders: FolderIndexDep,
) -> SuccessResponse:
    """Move a chat into a folder, taking it out of any other folder of the caller."""
    try:
        await _require_owned(folders, username, payload.folder_id)
        _require_participant(username, payload.chat_id)
        await folders.move_chat(username, payload.folder_id, payload.chat_id)
    except TransientStoreError as err:
        raise _store_unavailable(err) from err
    return SuccessResponse()


@router.delete("/assign", response_model=SuccessResponse)
async def unassign_chat(
    username: CurrentUsernameDep,
    folders: FolderIndexDep,
    folder_id: Annotated[str, Query(alias="folderId", min_length=1)],
    chat_id: Annotated[str, Query(alias="chatId", min_length=1)],
) -> SuccessResponse:
    """Take a chat out of a folder."""
    try:
        await _require_owned(folders, username, folder_id)
        await folders.unassign(folder_id, chat_id)
    except TransientStoreError as err:
        raise _store_unavailable(err) from err
    return SuccessResponse()
