"""
Exception hierarchy for the job queue.

- StoreError: the key-value store could not be reached or returned
  something that does not decode to a job record.
- ResultUnavailable: a result was requested for a job that is not FINISHED.
- LostJobError: a worker gave up on a job whose handler outlived its
  timeout and the worker is configured to stop on lost jobs.
"""


class JobQueueError(Exception):
    """Base class for all job queue errors."""


class StoreError(JobQueueError):
    """Failure communicating with the key-value store."""


class JobNotFoundError(StoreError):
    """The job record is absent (expired or never existed)."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Job not found: {job_id}")


class InvalidTransitionError(JobQueueError):
    """A lifecycle transition was requested out of a terminal state."""

    def __init__(self, job_id: str, current: str, target: str):
        self.job_id = job_id
        self.current = current
        self.target = target
        super().__init__(
            f"Job {job_id} cannot move from {current} to {target}"
        )


class ResultUnavailable(JobQueueError):
    """The job has no result because it is not FINISHED."""

    def __init__(self, job_id: str, message: str | None = None):
        self.job_id = job_id
        super().__init__(message or f"Result unavailable for job {job_id}")


class JobQueued(ResultUnavailable):
    """The job is still waiting to be claimed."""

    def __init__(self, job_id: str):
        super().__init__(job_id, f"Job {job_id} is queued")


class JobRunning(ResultUnavailable):
    """The job has been claimed and its handler is in flight."""

    def __init__(self, job_id: str):
        super().__init__(job_id, f"Job {job_id} is running")


class JobLost(ResultUnavailable):
    """The job's handler did not report completion before the timeout."""

    def __init__(self, job_id: str):
        super().__init__(job_id, f"Job {job_id} was lost")


class JobFailed(ResultUnavailable):
    """The job's handler raised an error."""

    def __init__(self, job_id: str, message: str, backtrace: str | None = None):
        self.message = message
        self.backtrace = backtrace
        super().__init__(job_id, f"Job {job_id} failed: {message}")


class LostJobError(JobQueueError):
    """
    Raised out of the worker loop when a job is lost and the worker
    was told to stop on lost jobs.
    """

    def __init__(self, job_id: str, timeout_seconds: int):
        self.job_id = job_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Job {job_id} did not complete within {timeout_seconds}s"
        )
