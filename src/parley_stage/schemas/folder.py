"""Folder-related Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field


class Folder(BaseModel):
    """User-defined folder grouping chats in the list view."""

    id: str
    name: str
    username: str
    created_at: int


class FolderCreateRequest(BaseModel):
    """Schema for creating a folder."""

    name: str = Field(..., max_length=64)


class FolderAssignRequest(BaseModel):
    """Schema for moving a chat into a folder."""

    folder_id: str = Field(..., alias="folderId")
    chat_id: str = Field(..., alias="chatId")

    model_config = ConfigDict(populate_by_name=True)


class FolderListResponse(BaseModel):
    """Folders owned by the caller together with their chats."""

    folders: list[Folder]
    chats: dict[str, list[str]] = Field(default_factory=dict)
