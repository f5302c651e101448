"""
Store key layout.

- ``{queue}:ids``  LIST   pending job ids, right-push / left-pop
- ``{queue}:{id}`` STRING serialized job record, always written with a TTL
"""

from jobqueue.constants import IDS_KEY_SUFFIX, KEY_SEPARATOR


def ids_key(queue_name: str) -> str:
    """Key of the pending-id list for a queue."""
    return f"{queue_name}{KEY_SEPARATOR}{IDS_KEY_SUFFIX}"


def record_key(queue_name: str, job_id: str) -> str:
    """Key of a single job record."""
    return f"{queue_name}{KEY_SEPARATOR}{job_id}"
