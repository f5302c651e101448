"""
Key-value store interface consumed by the queue client and the worker.
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """
    The store operations the job queue depends on.

    Implementations must raise ``StoreError`` for any failure talking to
    the backend. A blocking pop that times out is not a failure and
    returns None. Per-key operations are assumed atomic.
    """

    @abstractmethod
    async def get(self, key: str) -> str | None:
        """Read a value, None if the key is absent or expired."""

    @abstractmethod
    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        """Write a value that expires ``ttl_seconds`` after this write."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a key."""

    @abstractmethod
    async def right_push(self, list_key: str, value: str) -> None:
        """Append a value to the tail of a list."""

    @abstractmethod
    async def blocking_left_pop(self, list_key: str, wait_seconds: int) -> str | None:
        """
        Pop the head of a list, waiting up to ``wait_seconds`` for one.

        Returns:
            The popped value, or None if nothing arrived in time.
        """

    @abstractmethod
    async def list_range(self, list_key: str, start: int = 0, stop: int = -1) -> list[str]:
        """Read list elements between ``start`` and ``stop`` inclusive."""

    async def close(self) -> None:
        """Release any connections held by the store."""
