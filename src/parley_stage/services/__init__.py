"""Business logic services for the Parley application."""

from .blob_storage import LocalBlobStorage
from .chat_identity import resolve_chat_id
from .delivery import ChatSubscription, DeliveryConfig, SubscriptionState
from .errors import ConflictError, ForbiddenError, NotFoundError, ParleyError
from .folders import FolderIndex
from .message_store import MessageStore
from .unread import UnreadCounter

__all__ = [
    "ChatSubscription",
    "ConflictError",
    "DeliveryConfig",
    "FolderIndex",
    "ForbiddenError",
    "LocalBlobStorage",
    "MessageStore",
    "NotFoundError",
    "ParleyError",
    "SubscriptionState",
    "UnreadCounter",
    "resolve_chat_id",
]
