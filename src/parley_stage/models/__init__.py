"""SQLAlchemy models for the Parley application."""

from .user import User

__all__ = ["User"]
