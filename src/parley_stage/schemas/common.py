"""Shared response schemas."""

from pydantic import BaseModel


class SuccessResponse(BaseModel):
    """Generic acknowledgement payload."""

    success: bool = True
