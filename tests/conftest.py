"""
Pytest configuration and shared fixtures.
"""

import asyncio
import os
import threading
import time
from collections import defaultdict, deque
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio
from prometheus_client import CollectorRegistry

from jobqueue.client import QueueClient
from jobqueue.exceptions import StoreError
from jobqueue.observability.metrics import MetricsCollector
from jobqueue.store.base import KeyValueStore
from jobqueue.store.redis_store import RedisStore
from jobqueue.worker.handlers import JobHandler
from jobqueue.worker.main import Worker

# Live server for integration tests; they skip when it is unreachable
TEST_REDIS_URL = os.getenv("TEST_REDIS_URL", "redis://localhost:6379/15")


class MemoryStore(KeyValueStore):
    """
    In-process store with TTL expiry and a blocking pop.

    Every write is appended to ``writes`` so tests can check the expiry
    applied at each step. Operations named in ``fail_on`` raise StoreError.
    """

    def __init__(self) -> None:
        self.values: dict[str, tuple[str, float]] = {}
        self.lists: dict[str, deque[str]] = defaultdict(deque)
        self.writes: list[tuple[str, str, int]] = []
        self.fail_on: set[str] = set()
        self._pushed = asyncio.Condition()

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError(f"{operation} failed")

    def expire(self, key: str) -> None:
        """Drop a key as if its TTL ran out."""
        self.values.pop(key, None)

    def ttl_writes(self, key: str) -> list[int]:
        return [ttl for written, _, ttl in self.writes if written == key]

    async def get(self, key: str) -> str | None:
        self._check("get")
        entry = self.values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if time.monotonic() >= expires_at:
            del self.values[key]
            return None
        return value

    async def set_with_expiry(self, key: str, value: str, ttl_seconds: int) -> None:
        self._check("set_with_expiry")
        self.values[key] = (value, time.monotonic() + ttl_seconds)
        self.writes.append((key, value, ttl_seconds))

    async def delete(self, key: str) -> None:
        self._check("delete")
        self.values.pop(key, None)
        self.lists.pop(key, None)

    async def right_push(self, list_key: str, value: str) -> None:
        self._check("right_push")
        async with self._pushed:
            self.lists[list_key].append(value)
            self._pushed.notify_all()

    async def blocking_left_pop(self, list_key: str, wait_seconds: int) -> str | None:
        self._check("blocking_left_pop")
        async with self._pushed:
            try:
                await asyncio.wait_for(
                    self._pushed.wait_for(lambda: bool(self.lists[list_key])),
                    timeout=wait_seconds,
                )
            except asyncio.TimeoutError:
                return None
            return self.lists[list_key].popleft()

    async def list_range(self, list_key: str, start: int = 0, stop: int = -1) -> list[str]:
        self._check("list_range")
        items = list(self.lists.get(list_key, ()))
        end = len(items) if stop == -1 else stop + 1
        return items[start:end]


@pytest.fixture
def store() -> MemoryStore:
    """Create an empty in-memory store."""
    return MemoryStore()


@pytest.fixture
def registry() -> CollectorRegistry:
    """Create a private metrics registry."""
    return CollectorRegistry()


@pytest.fixture
def metrics(registry: CollectorRegistry) -> MetricsCollector:
    """Create a metrics collector on the private registry."""
    return MetricsCollector(registry=registry)


@pytest.fixture
def queue_name() -> str:
    """Generate a unique queue name."""
    return f"test-queue-{uuid4().hex[:8]}"


@pytest.fixture
def client(store: MemoryStore, metrics: MetricsCollector, queue_name: str) -> QueueClient:
    """Create a queue client over the in-memory store."""
    return QueueClient(queue_name=queue_name, store=store, metrics=metrics)


@pytest.fixture
def make_worker(
    store: MemoryStore,
    metrics: MetricsCollector,
    queue_name: str,
) -> Callable[..., Worker]:
    """
    Build single-claim workers with short timings.

    Keyword arguments override the worker options.
    """

    def factory(handler: JobHandler, **options: Any) -> Worker:
        defaults: dict[str, Any] = {
            "wait_seconds": 1,
            "timeout_seconds": 2,
            "polls_per_second": 10,
            "result_ttl_seconds": 30,
            "fatal_on_lost": False,
            "run_forever": False,
        }
        defaults.update(options)
        return Worker(
            handler,
            queue_name=queue_name,
            store=store,
            metrics=metrics,
            **defaults,
        )

    return factory


@pytest.fixture
def release() -> Generator[threading.Event]:
    """
    Event that blocked test handlers wait on.

    Handlers run on their own threads, so this is a thread event. Set on
    teardown so no handler thread outlives its test.
    """
    event = threading.Event()
    yield event
    event.set()


@pytest_asyncio.fixture
async def redis_store(queue_name: str) -> AsyncGenerator[RedisStore]:
    """
    Create a store on the test Redis server.

    Skips when no server is reachable. Keys of the test queue are
    removed afterwards.
    """
    redis_store = RedisStore.from_url(TEST_REDIS_URL)
    try:
        await redis_store.ping()
    except StoreError:
        await redis_store.close()
        pytest.skip(f"Redis not reachable at {TEST_REDIS_URL}")

    yield redis_store

    async for key in redis_store.client.scan_iter(match=f"{queue_name}:*"):
        await redis_store.client.delete(key)
    await redis_store.close()
