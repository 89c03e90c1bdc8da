# src/parley_stage/api/v1/endpoints/profile.py
"""Profile endpoints for the Parley API."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, File, HTTPException, Query, UploadFile, status

from parley_stage.api.v1.dependencies import BlobStorageDep, CurrentUsernameDep, SessionDep
from parley_stage.core.settings import settings
from parley_stage.db.time import now_ms
from parley_stage.schemas.user import PhotoUploadResponse, ProfileResponse, ProfileUpdateRequest
from parley_stage.services import users as user_service

router = APIRouter(prefix="/profile", tags=["profile"])

_PHOTO_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


@router.get("", response_model=ProfileResponse)
async def get_profile(
    current_username: CurrentUsernameDep,
    db: SessionDep,
    username: Annotated[str | None, Query()] = None,
) -> ProfileResponse:
    """Return the profile of `username`, or of the caller when omitted."""
    user = user_service.get_user(db, username or current_username)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    return user_service.to_profile(user)


@router.put("", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdateRequest,
    username: CurrentUsernameDep,
    db: SessionDep,
) -> ProfileResponse:
    """Update the caller's profile fields."""
    user = user_service.get_user(db, username)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found",
        )
    updated = user_service.update_profile(db, user, payload)
    return user_service.to_profile(updated)


@router.post("/photo", response_model=PhotoUploadResponse)
async def upload_photo(
    username: CurrentUsernameDep,
    storage: BlobStorageDep,
    photo: Annotated[UploadFile, File()],
) -> PhotoUploadResponse:
    """Store a profile photo and return its public URL.

    The URL is not written to the profile; clients save it with `PUT /profile`.
    """
    extension = _PHOTO_EXTENSIONS.get(photo.content_type or "")
    if extension is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed.",
        )

    data = await photo.read(settings.photo_max_bytes + 1)
    if len(data) > settings.photo_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="File too large. Maximum size is 5MB.",
        )

    url = await storage.put(f"profile-photos/{username}-{now_ms()}.{extension}", data)
    return PhotoUploadResponse(url=url)
