"""
Job lifecycle transitions.

QUEUED -> RUNNING on claim, RUNNING -> FINISHED | FAILED | LOST once the
supervised handler reports (or fails to report) its outcome. Terminal
records never move again.
"""

from jobqueue.constants import TERMINAL_STATES, JobState
from jobqueue.exceptions import InvalidTransitionError
from jobqueue.types.job import (
    FailedStatus,
    FinishedStatus,
    JobRecord,
    LostStatus,
    RunningStatus,
    Status,
)


def is_terminal(status: Status) -> bool:
    """Check whether a status is FINISHED, FAILED or LOST."""
    return JobState(status.state) in TERMINAL_STATES


def is_running(status: Status) -> bool:
    """Check for RUNNING regardless of any partial result."""
    return status.state == JobState.RUNNING


def _transition(record: JobRecord, status: Status) -> JobRecord:
    if is_terminal(record.status):
        raise InvalidTransitionError(record.id, record.status.state, status.state)
    return record.model_copy(update={"status": status})


def claim(record: JobRecord) -> JobRecord:
    """
    Mark a record as claimed.

    Args:
        record: The record loaded after the id was popped.

    Returns:
        A RUNNING copy of the record with no partial result.

    Raises:
        InvalidTransitionError: If the record is already terminal.
    """
    return _transition(record, RunningStatus())


def finish(record: JobRecord, status: FinishedStatus | FailedStatus) -> JobRecord:
    """Apply the outcome reported by the handler."""
    return _transition(record, status)


def mark_lost(record: JobRecord) -> JobRecord:
    """Reclassify a record whose handler outlived its timeout."""
    return _transition(record, LostStatus())
