"""
Application constants.
Centralized location for all constant values used across the application.
"""

from enum import StrEnum


class JobState(StrEnum):
    """
    Job lifecycle states.

    State transitions:
    - QUEUED -> RUNNING (claimed by a worker)
    - RUNNING -> FINISHED (handler returned)
    - RUNNING -> FAILED (handler raised)
    - RUNNING -> LOST (no outcome before the timeout)

    FINISHED, FAILED and LOST are terminal.
    """

    QUEUED = "queued"
    RUNNING = "running"
    FINISHED = "finished"
    FAILED = "failed"
    LOST = "lost"


TERMINAL_STATES: frozenset[JobState] = frozenset(
    {JobState.FINISHED, JobState.FAILED, JobState.LOST}
)

# Key layout
IDS_KEY_SUFFIX = "ids"
KEY_SEPARATOR = ":"

# Default values
DEFAULT_WAIT_SECONDS = 10
DEFAULT_TIMEOUT_SECONDS = 30
DEFAULT_POLLS_PER_SECOND = 1
DEFAULT_RESULT_TTL_SECONDS = 30
DEFAULT_JOB_TTL_SECONDS = 30

# Metrics names
METRIC_JOBS_ENQUEUED = "jobs_enqueued_total"
METRIC_JOBS_CLAIMED = "jobs_claimed_total"
METRIC_JOBS_COMPLETED = "jobs_completed_total"
METRIC_JOB_DURATION = "job_duration_seconds"
METRIC_JOBS_LOST = "jobs_lost_total"
METRIC_MISSED_CLAIMS = "missed_claims_total"

# Trace span names
SPAN_ENQUEUE_JOB = "enqueue_job"
SPAN_CLAIM_JOB = "claim_job"
SPAN_EXECUTE_JOB = "execute_job"
