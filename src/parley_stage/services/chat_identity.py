"""Canonical chat identifiers for two-party conversations."""

from __future__ import annotations

from typing import Final

CHAT_ID_SEPARATOR: Final[str] = ":"


def resolve_chat_id(user_a: str, user_b: str) -> str:
    """Return the chat id shared by two distinct users.

    The pair is sorted before joining, so the result does not depend on who
    initiates the conversation: ``resolve_chat_id(a, b) == resolve_chat_id(b, a)``.

    Raises:
        ValueError: If either username is empty, contains the separator, or
            both usernames are the same.
    """
    for username in (user_a, user_b):
        if not username:
            raise ValueError("Username must not be empty")
        if CHAT_ID_SEPARATOR in username:
            raise ValueError(f"Username must not contain {CHAT_ID_SEPARATOR!r}")
    if user_a == user_b:
        raise ValueError("Cannot open a chat with yourself")
    first, second = sorted((user_a, user_b))
    return f"{first}{CHAT_ID_SEPARATOR}{second}"


def participants_of(chat_id: str) -> tuple[str, str]:
    """Split a chat id back into its sorted participant pair."""
    first, sep, second = chat_id.partition(CHAT_ID_SEPARATOR)
    if not sep or not first or not second:
        raise ValueError(f"Malformed chat id: {chat_id!r}")
    return first, second
