"""Account registration, authentication and profile helpers."""
from __future__ import annotations

import re
from collections.abc import Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from parley_stage.core import security
from parley_stage.core.settings import settings
from parley_stage.models.user import User
from parley_stage.schemas.user import ProfileResponse, ProfileUpdateRequest
from parley_stage.services.errors import ConflictError

__all__ = [
    "authenticate_user",
    "get_user",
    "register_user",
    "search_usernames",
    "to_profile",
    "update_profile",
    "validate_credentials",
]

_USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def validate_credentials(username: str, password: str) -> None:
    """Check registration input against the configured rules.

    Raises:
        ValueError: With a user-facing message describing the first violation.
    """
    if not username or not password:
        raise ValueError("Username and password required")
    if (
        len(username) < settings.username_min_length
        or len(password) < settings.password_min_length
    ):
        raise ValueError(
            f"Username min {settings.username_min_length} chars, "
            f"password min {settings.password_min_length} chars"
        )
    if len(username) > settings.username_max_length:
        raise ValueError(f"Username max {settings.username_max_length} chars")
    if not _USERNAME_PATTERN.match(username):
        raise ValueError("Username may only contain letters, digits, '.', '_' and '-'")


def get_user(db: Session, username: str) -> User | None:
    """Return a single user by username."""
    return db.get(User, username)


def register_user(db: Session, username: str, password: str) -> User:
    """Create a new account with a bcrypt-hashed password.

    Raises:
        ValueError: If the credentials break the registration rules.
        ConflictError: If the username is already taken.
    """
    validate_credentials(username, password)
    if get_user(db, username) is not None:
        raise ConflictError("Username already exists")

    user = User(username=username, password_hash=security.hash_password(password))
    db.add(user)
    try:
        db.commit()
    except IntegrityError as err:
        # Lost a race with a concurrent registration of the same name.
        db.rollback()
        raise ConflictError("Username already exists") from err
    db.refresh(user)
    return user


def authenticate_user(db: Session, username: str, password: str) -> User | None:
    """Return the user if the password matches, otherwise None."""
    user = get_user(db, username)
    if user is None:
        return None
    if not security.verify_password(password, user.password_hash):
        return None
    return user


def update_profile(db: Session, user: User, update_data: ProfileUpdateRequest) -> User:
    """Apply partial profile updates to an existing user."""
    update_dict = update_data.model_dump(exclude_unset=True)
    for key, value in update_dict.items():
        setattr(user, key, value)

    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def search_usernames(db: Session, query: str, *, exclude: str, limit: int = 10) -> Sequence[str]:
    """Return usernames containing `query` (case-insensitive), excluding `exclude`."""
    pattern = f"%{query.lower()}%"
    stmt = (
        select(User.username)
        .where(User.username.ilike(pattern), User.username != exclude)
        .order_by(User.username)
        .limit(limit)
    )
    return list(db.scalars(stmt))


def to_profile(user: User) -> ProfileResponse:
    """Convert a User ORM instance to its public profile schema."""
    return ProfileResponse(
        username=user.username,
        created_at=user.created_at_ms,
        display_name=user.display_name,
        bio=user.bio,
        photo_url=user.photo_url,
        emoji=user.emoji,
    )
