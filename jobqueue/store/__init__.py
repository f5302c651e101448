"""
Store module.
Contains the key-value store interface, its Redis implementation and
connection management.
"""

from jobqueue.store.base import KeyValueStore
from jobqueue.store.connection import close_store, get_store, init_store
from jobqueue.store.redis_store import RedisStore

__all__ = [
    "KeyValueStore",
    "RedisStore",
    "init_store",
    "get_store",
    "close_store",
]
