"""Shared API dependencies for authentication and store access."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from parley_stage.core.security import verify_token
from parley_stage.db.session import get_db
from parley_stage.services.blob_storage import LocalBlobStorage
from parley_stage.services.delivery import DeliveryConfig
from parley_stage.services.folders import FolderIndex
from parley_stage.services.message_store import MessageStore
from parley_stage.services.unread import UnreadCounter
from parley_stage.store import KeyValueStore

# HTTP Bearer scheme; missing credentials are reported as 401 below rather than 403.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _unauthorized(detail: str = "Unauthorized") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_username(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str:
    """Resolve the bearer token to a username.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if credentials is None or not credentials.credentials:
        raise _unauthorized()
    username = verify_token(credentials.credentials)
    if username is None:
        raise _unauthorized("Could not validate credentials")
    return username


def get_store(request: Request) -> KeyValueStore:
    """Return the key-value store created at application startup."""
    store: KeyValueStore | None = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat store is not available",
        )
    return store


StoreDep = Annotated[KeyValueStore, Depends(get_store)]


def get_unread_counter(store: StoreDep) -> UnreadCounter:
    return UnreadCounter(store)


def get_message_store(
    store: StoreDep,
    unread: Annotated[UnreadCounter, Depends(get_unread_counter)],
) -> MessageStore:
    return MessageStore(store, unread)


def get_folder_index(store: StoreDep) -> FolderIndex:
    return FolderIndex(store)


def get_delivery_config() -> DeliveryConfig:
    return DeliveryConfig.from_settings()


def get_blob_storage() -> LocalBlobStorage:
    return LocalBlobStorage()


# Type aliases for injected services
CurrentUsernameDep = Annotated[str, Depends(get_current_username)]
UnreadCounterDep = Annotated[UnreadCounter, Depends(get_unread_counter)]
MessageStoreDep = Annotated[MessageStore, Depends(get_message_store)]
FolderIndexDep = Annotated[FolderIndex, Depends(get_folder_index)]
DeliveryConfigDep = Annotated[DeliveryConfig, Depends(get_delivery_config)]
BlobStorageDep = Annotated[LocalBlobStorage, Depends(get_blob_storage)]
