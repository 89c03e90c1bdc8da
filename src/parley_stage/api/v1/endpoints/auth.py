# src/parley_stage/api/v1/endpoints/auth.py
"""Authentication endpoints for the Parley API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from parley_stage.api.v1.dependencies import CurrentUsernameDep, SessionDep
from parley_stage.core.security import create_access_token
from parley_stage.schemas.common import SuccessResponse
from parley_stage.schemas.user import (
    LoginRequest,
    LoginResponse,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
)
from parley_stage.services import users as user_service
from parley_stage.services.errors import ConflictError

router = APIRouter(tags=["authentication"])
logger = logging.getLogger(__name__)


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=RegisterResponse,
)
async def register(payload: RegisterRequest, db: SessionDep) -> RegisterResponse:
    """Create an account if the username is unused."""
    try:
        user = user_service.register_user(db, payload.username, payload.password)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err
    except ConflictError as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(err),
        ) from err

    logger.info("Registered user %s", user.username)
    return RegisterResponse(username=user.username)


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, db: SessionDep) -> LoginResponse:
    """Verify the password and issue a bearer token."""
    if not payload.username or not payload.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Username and password required",
        )

    user = user_service.authenticate_user(db, payload.username, payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
        )

    return LoginResponse(
        username=user.username,
        access_token=create_access_token(user.username),
    )


@router.post("/logout", response_model=SuccessResponse)
async def logout(username: CurrentUsernameDep) -> SuccessResponse:
    """Acknowledge logout; bearer tokens are discarded by the client."""
    logger.debug("User %s logged out", username)
    return SuccessResponse()


@router.get("/me", response_model=MeResponse)
async def me(username: CurrentUsernameDep) -> MeResponse:
    """Resolve the presented token to a username."""
    return MeResponse(username=username)
