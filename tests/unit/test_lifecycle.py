"""
Unit tests for job lifecycle transitions.
"""

import pytest

from jobqueue.constants import JobState
from jobqueue.exceptions import InvalidTransitionError
from jobqueue.lifecycle import claim, finish, is_running, is_terminal, mark_lost
from jobqueue.types.job import (
    FailedStatus,
    FinishedStatus,
    JobRecord,
    LostStatus,
    QueuedStatus,
    RunningStatus,
)


class TestLifecycle:
    """Tests for lifecycle transitions."""

    def test_claim_sets_running_without_result(self):
        """Test claiming a queued record."""
        record = JobRecord(id="job-1", args=["a"])

        claimed = claim(record)

        assert claimed.status == RunningStatus()
        assert claimed.id == record.id
        assert claimed.args == record.args
        # The input record is left untouched
        assert record.state == JobState.QUEUED

    def test_claim_clears_partial_result(self):
        """Test a re-claimed RUNNING record starts without a partial result."""
        record = JobRecord(status=RunningStatus(result="half"))

        assert claim(record).status.result is None

    def test_finish(self):
        """Test applying a handler outcome."""
        record = claim(JobRecord())

        finished = finish(record, FinishedStatus(result="done"))
        failed = finish(record, FailedStatus(message="boom"))

        assert finished.status.result == "done"
        assert failed.state == JobState.FAILED

    def test_mark_lost(self):
        """Test reclassifying a running record."""
        assert mark_lost(claim(JobRecord())).status == LostStatus()

    @pytest.mark.parametrize(
        "status",
        [FinishedStatus(result="x"), FailedStatus(message="boom"), LostStatus()],
    )
    def test_terminal_records_do_not_move(self, status):
        """Test no transition leaves a terminal state."""
        record = JobRecord(id="job-1", status=status)

        with pytest.raises(InvalidTransitionError):
            claim(record)
        with pytest.raises(InvalidTransitionError):
            mark_lost(record)
        with pytest.raises(InvalidTransitionError):
            finish(record, FinishedStatus())

    def test_is_terminal(self):
        """Test terminal classification."""
        assert is_terminal(FinishedStatus())
        assert is_terminal(FailedStatus(message="boom"))
        assert is_terminal(LostStatus())
        assert not is_terminal(QueuedStatus())
        assert not is_terminal(RunningStatus())

    def test_is_running_ignores_partial_result(self):
        """Test RUNNING is recognised with or without a partial result."""
        assert is_running(RunningStatus())
        assert is_running(RunningStatus(result="half"))
        assert not is_running(FinishedStatus())
