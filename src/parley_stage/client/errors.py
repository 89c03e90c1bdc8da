"""Exceptions raised by the Parley HTTP clients."""


class ParleyClientError(RuntimeError):
    """Base exception for client-side failures talking to the API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class AuthenticationError(ParleyClientError):
    """Raised when the server rejects the client's token or credentials."""
