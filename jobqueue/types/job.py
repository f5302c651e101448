"""
Job record and status type definitions.

A job record is stored as JSON under ``{queue}:{id}``. The status is a
tagged union keyed on ``state``:

    {"id": "...", "status": {"state": "finished", "result": "ok"}, "args": ["a"]}
"""

from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from jobqueue.constants import JobState


class QueuedStatus(BaseModel):
    """Waiting to be claimed."""

    model_config = ConfigDict(frozen=True)

    state: Literal["queued"] = "queued"


class RunningStatus(BaseModel):
    """Claimed by a worker, handler in flight."""

    model_config = ConfigDict(frozen=True)

    state: Literal["running"] = "running"
    result: str | None = None


class FinishedStatus(BaseModel):
    """Handler completed without error."""

    model_config = ConfigDict(frozen=True)

    state: Literal["finished"] = "finished"
    result: str | None = None


class FailedStatus(BaseModel):
    """
    Handler raised an error.

    ``message`` is the error text, ``backtrace`` the formatted traceback
    when one was captured.
    """

    model_config = ConfigDict(frozen=True)

    state: Literal["failed"] = "failed"
    message: str
    backtrace: str | None = None


class LostStatus(BaseModel):
    """Handler did not report completion before the timeout."""

    model_config = ConfigDict(frozen=True)

    state: Literal["lost"] = "lost"


Status = Annotated[
    Union[QueuedStatus, RunningStatus, FinishedStatus, FailedStatus, LostStatus],
    Field(discriminator="state"),
]


def _new_job_id() -> str:
    return str(uuid4())


class JobRecord(BaseModel):
    """
    The persisted unit of work.

    Records are immutable; lifecycle transitions return a new record
    with the same id (see ``jobqueue.lifecycle``).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_job_id)
    status: Status = Field(default_factory=QueuedStatus)
    args: list[str] = Field(default_factory=list)

    @property
    def state(self) -> JobState:
        """The lifecycle state without its payload."""
        return JobState(self.status.state)

    def to_json(self) -> str:
        """Serialize the record for storage."""
        return self.model_dump_json()

    @classmethod
    def from_json(cls, raw: str | bytes) -> "JobRecord":
        """Deserialize a record read from the store."""
        return cls.model_validate_json(raw)
