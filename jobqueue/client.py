"""
Producer-side queue client.

Every operation is a single read or write against the store; nothing is
cached in memory, so any number of clients and workers can share a queue.
"""

import json
import logging
from typing import Any

from pydantic import ValidationError

from jobqueue.config import get_settings
from jobqueue.constants import SPAN_ENQUEUE_JOB, JobState
from jobqueue.exceptions import (
    JobFailed,
    JobLost,
    JobNotFoundError,
    JobQueued,
    JobRunning,
    StoreError,
)
from jobqueue.keys import ids_key, record_key
from jobqueue.observability.metrics import MetricsCollector, get_metrics
from jobqueue.observability.tracing import get_tracer, set_span_attributes
from jobqueue.store import KeyValueStore, get_store
from jobqueue.types.job import JobRecord, Status
from jobqueue.worker.handlers import JobHandler
from jobqueue.worker.main import Worker

logger = logging.getLogger(__name__)


class QueueClient:
    """
    Client for enqueueing jobs and reading their status and results.

    Implements:
    - enqueue: write a QUEUED record, then push its id
    - status / result: read the record
    - drop: clear the pending-id list, leaving records to their TTL
    """

    def __init__(
        self,
        queue_name: str | None = None,
        store: KeyValueStore | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the client.

        Args:
            queue_name: The queue to operate on. Defaults to the configured queue.
            store: Key-value store. Defaults to the shared store.
            metrics: Metrics collector. Defaults to the global one.
        """
        self._settings = get_settings()
        self.queue_name = queue_name or self._settings.queue_name
        self._store = store
        self._metrics = metrics or get_metrics()

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            self._store = get_store()
        return self._store

    async def enqueue(
        self,
        args: list[str] | None = None,
        ttl_seconds: int | None = None,
        job_id: str | None = None,
    ) -> str:
        """
        Enqueue a new job.

        Args:
            args: Arguments passed verbatim to the handler.
            ttl_seconds: Expiry of the record if no worker claims it in time.
                Defaults to ``job_ttl_seconds``.
            job_id: Caller-chosen id. A UUID4 is generated when omitted.

        Returns:
            The job id.

        Raises:
            StoreError: If either store write fails.
            ValueError: If ``ttl_seconds`` is not positive.
        """
        ttl = self._settings.job_ttl_seconds if ttl_seconds is None else ttl_seconds
        if ttl <= 0:
            raise ValueError("ttl_seconds must be positive")

        fields: dict[str, Any] = {"args": list(args or [])}
        if job_id is not None:
            fields["id"] = job_id
        record = JobRecord(**fields)

        with get_tracer().start_as_current_span(SPAN_ENQUEUE_JOB) as span:
            set_span_attributes(span, job_id=record.id, queue=self.queue_name)

            await self.store.set_with_expiry(
                record_key(self.queue_name, record.id),
                record.to_json(),
                ttl,
            )
            await self.store.right_push(ids_key(self.queue_name), record.id)

        self._metrics.record_job_enqueued(self.queue_name)
        logger.info(
            "Enqueued job",
            extra={"job_id": record.id, "queue": self.queue_name, "ttl": ttl}
        )
        return record.id

    async def get_job(self, job_id: str) -> JobRecord | None:
        """
        Load a job record.

        Args:
            job_id: The job id.

        Returns:
            The record, or None if absent or expired.

        Raises:
            StoreError: If the store fails or the record does not decode.
        """
        key = record_key(self.queue_name, job_id)
        raw = await self.store.get(key)
        if raw is None:
            return None

        try:
            return JobRecord.from_json(raw)
        except ValidationError as e:
            raise StoreError(f"Malformed job record at {key}") from e

    async def status(self, job_id: str) -> Status:
        """
        Get the status of a job.

        Raises:
            JobNotFoundError: If the record expired or never existed.
            StoreError: On store failures.
        """
        record = await self.get_job(job_id)
        if record is None:
            raise JobNotFoundError(job_id)
        return record.status

    async def result(self, job_id: str) -> str | None:
        """
        Get the result of a finished job.

        Returns:
            The handler's return value, possibly None.

        Raises:
            JobQueued: The job has not been claimed yet.
            JobRunning: The handler is still in flight.
            JobLost: The handler overran its timeout.
            JobFailed: The handler raised; carries message and backtrace.
            JobNotFoundError: If the record expired or never existed.
        """
        status = await self.status(job_id)

        if status.state == JobState.FINISHED:
            return status.result
        if status.state == JobState.QUEUED:
            raise JobQueued(job_id)
        if status.state == JobState.RUNNING:
            raise JobRunning(job_id)
        if status.state == JobState.LOST:
            raise JobLost(job_id)
        raise JobFailed(job_id, status.message, status.backtrace)

    async def drop(self) -> None:
        """
        Delete the pending-id list.

        Records already written are left alone and expire on their own TTL.
        """
        await self.store.delete(ids_key(self.queue_name))
        logger.info("Dropped pending jobs", extra={"queue": self.queue_name})

    async def pending_ids(self) -> list[str]:
        """Ids waiting to be claimed, oldest first."""
        return await self.store.list_range(ids_key(self.queue_name))

    async def get_jobs(self) -> list[JobRecord]:
        """
        Records of all pending jobs, oldest first.

        Ids whose records already expired are skipped.
        """
        jobs = []
        for job_id in await self.pending_ids():
            record = await self.get_job(job_id)
            if record is not None:
                jobs.append(record)
        return jobs

    async def get_jobs_json(self) -> str:
        """Pending job records as a JSON array."""
        jobs = await self.get_jobs()
        return json.dumps([job.model_dump(mode="json") for job in jobs])

    async def work(self, handler: JobHandler, **options: Any) -> None:
        """
        Run a worker on this client's queue and store.

        Args:
            handler: Called as ``handler(job_id, args)`` for each job.
            **options: Worker options, see ``Worker``.
        """
        worker = Worker(
            handler,
            queue_name=self.queue_name,
            store=self.store,
            metrics=self._metrics,
            **options,
        )
        await worker.start()
