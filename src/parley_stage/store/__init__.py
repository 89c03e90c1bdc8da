"""Key-value store backends for chat data."""

from parley_stage.core.settings import Settings, settings

from .base import KeyValueStore, StoreError, TransientStoreError
from .memory import InMemoryKeyValueStore
from .redis_store import RedisKeyValueStore


def create_store(config: Settings | None = None) -> KeyValueStore:
    """Build the store backend selected by `STORE_BACKEND`."""
    config = config or settings
    if config.store_backend == "memory":
        return InMemoryKeyValueStore()
    return RedisKeyValueStore(config.redis_url)


__all__ = [
    "KeyValueStore",
    "StoreError",
    "TransientStoreError",
    "InMemoryKeyValueStore",
    "RedisKeyValueStore",
    "create_store",
]
