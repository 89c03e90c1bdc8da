# src/parley_stage/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    chats_router,
    folders_router,
    notifications_router,
    profile_router,
    subscribe_router,
    users_router,
)

__all__ = [
    "auth_router",
    "chats_router",
    "subscribe_router",
    "folders_router",
    "profile_router",
    "users_router",
    "notifications_router",
]
