"""Exception hierarchy shared by the chat services.

Endpoints translate these into HTTP responses; services never raise
`HTTPException` themselves.
"""

from __future__ import annotations


class ParleyError(RuntimeError):
    """Base exception for chat service failures."""


class NotFoundError(ParleyError):
    """Raised when a message, folder or user does not exist."""


class ForbiddenError(ParleyError):
    """Raised when the caller may not act on an existing resource.

    The resource is left unchanged.
    """


class ConflictError(ParleyError):
    """Raised when creating a resource whose unique key is already taken."""
