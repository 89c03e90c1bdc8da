"""Chat and message Pydantic schemas.

The same models are used for the JSON documents kept in the key-value store
and for API payloads.
"""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Message(BaseModel):
    """A single entry of a chat log."""

    id: str = Field(..., description="Time-ordered message identifier")
    chat_id: str = Field(..., validation_alias=AliasChoices("chat_id", "chatId"))
    author: str
    text: str
    timestamp: int = Field(..., description="Creation time in epoch milliseconds")
    is_deleted: bool = Field(False, validation_alias=AliasChoices("is_deleted", "isDeleted"))


class LastMessage(BaseModel):
    """Denormalized snapshot of the newest message, for list views."""

    text: str
    author: str
    timestamp: int


class Chat(BaseModel):
    """Two-party conversation record."""

    id: str
    participants: tuple[str, str]
    created_at: int
    last_message: LastMessage | None = None

    def other_participant(self, username: str) -> str:
        """Return the participant that is not `username`."""
        first, second = self.participants
        return second if first == username else first

    @property
    def last_activity(self) -> int:
        """Timestamp used to order chat lists by recency."""
        if self.last_message is not None:
            return self.last_message.timestamp
        return self.created_at


class ChatSummary(Chat):
    """Chat record enriched for the requesting user."""

    other_user: str
    unread_count: int = 0
    folder_id: str | None = None


class ChatListResponse(BaseModel):
    """Response for the chat list endpoint."""

    chats: list[ChatSummary]


class HistoryResponse(BaseModel):
    """Ordered message log for one chat."""

    chat_id: str
    messages: list[Message]


class SendMessageRequest(BaseModel):
    """Schema for sending a message to another user."""

    text: str = Field(..., description="Message body")
    other_user: str = Field(..., alias="otherUser", description="Recipient username")
    client_id: str | None = Field(
        None,
        alias="clientId",
        max_length=64,
        description="Optional idempotency key; retries with the same key do not duplicate",
    )

    model_config = ConfigDict(populate_by_name=True)


class SendMessageResponse(BaseModel):
    """Response returned after a message is stored."""

    success: bool = True
    message: Message


class DeleteMessageRequest(BaseModel):
    """Schema for soft-deleting one of the caller's messages."""

    message_id: str = Field(..., alias="messageId")

    model_config = ConfigDict(populate_by_name=True)


class MarkReadRequest(BaseModel):
    """Schema for acknowledging every message in a chat."""

    other_user: str = Field(..., alias="otherUser")

    model_config = ConfigDict(populate_by_name=True)
