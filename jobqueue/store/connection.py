"""
Store connection management.
Handles creation and disposal of the shared store instance.
"""

import logging

from jobqueue.config import get_settings
from jobqueue.store.base import KeyValueStore
from jobqueue.store.redis_store import RedisStore

logger = logging.getLogger(__name__)

# Global store instance
_store: KeyValueStore | None = None


async def init_store(url: str | None = None) -> KeyValueStore:
    """
    Initialize the shared store.
    Should be called on process startup.

    Args:
        url: Redis URL. Defaults to the configured ``redis_url``.

    Returns:
        KeyValueStore: The store instance.
    """
    global _store
    if _store is None:
        settings = get_settings()
        _store = RedisStore.from_url(url or settings.redis_url)
        logger.info("Store connection initialized")
    return _store


def get_store() -> KeyValueStore:
    """
    Get the shared store.

    Returns:
        KeyValueStore: The store instance.

    Raises:
        RuntimeError: If the store is not initialized.
    """
    if _store is None:
        raise RuntimeError("Store not initialized. Call init_store() first.")
    return _store


async def close_store() -> None:
    """
    Close the store connection.
    Should be called on process shutdown.
    """
    global _store
    if _store is not None:
        await _store.close()
        _store = None
        logger.info("Store connection closed")
