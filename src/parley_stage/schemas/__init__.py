"""Pydantic schemas for request/response validation and stored documents."""

from .chat import (
    Chat,
    ChatSummary,
    DeleteMessageRequest,
    LastMessage,
    MarkReadRequest,
    Message,
    SendMessageRequest,
)
from .common import SuccessResponse
from .folder import Folder, FolderAssignRequest, FolderCreateRequest

__all__ = [
    "Chat",
    "ChatSummary",
    "DeleteMessageRequest",
    "Folder",
    "FolderAssignRequest",
    "FolderCreateRequest",
    "LastMessage",
    "MarkReadRequest",
    "Message",
    "SendMessageRequest",
    "SuccessResponse",
]
