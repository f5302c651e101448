"""
Redis Job Queue

Producers enqueue jobs identified by a unique id and a list of string
arguments; workers claim them with a blocking pop, run a handler under a
wall-clock timeout and store the outcome with a time-to-live.
"""

__version__ = "1.0.0"

from jobqueue.client import QueueClient  # noqa: E402
from jobqueue.worker.main import Worker  # noqa: E402

__all__ = ["QueueClient", "Worker", "__version__"]
