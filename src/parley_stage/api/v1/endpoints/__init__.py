# src/parley_stage/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chats import router as chats_router
from .folders import router as folders_router
from .notifications import router as notifications_router
from .profile import router as profile_router
from .subscribe import router as subscribe_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "chats_router",
    "subscribe_router",
    "folders_router",
    "profile_router",
    "users_router",
    "notifications_router",
]
