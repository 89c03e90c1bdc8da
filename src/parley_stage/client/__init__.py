"""Reference clients for the Parley delivery endpoints."""

from .api import ParleyClient
from .errors import AuthenticationError, ParleyClientError
from .inbox import MessageInbox
from .polling import PollingChatClient
from .sse import SSEEvent, SSEParser
from .streaming import StreamingChatClient

__all__ = [
    "AuthenticationError",
    "MessageInbox",
    "ParleyClient",
    "ParleyClientError",
    "PollingChatClient",
    "SSEEvent",
    "SSEParser",
    "StreamingChatClient",
]
