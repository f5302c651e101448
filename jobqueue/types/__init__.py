"""
Type definitions for the job queue.
"""

from jobqueue.types.job import (
    FailedStatus,
    FinishedStatus,
    JobRecord,
    LostStatus,
    QueuedStatus,
    RunningStatus,
    Status,
)

__all__ = [
    "JobRecord",
    "Status",
    "QueuedStatus",
    "RunningStatus",
    "FinishedStatus",
    "FailedStatus",
    "LostStatus",
]
