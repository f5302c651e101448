"""
Worker process for executing jobs.

The worker claims one job id at a time with a blocking pop, runs the
handler on a thread of its own, watches it for at most ``timeout_seconds``
and stores the outcome. A handler that overruns is never cancelled; its
job is recorded as LOST and any result it produces later is dropped.
"""

import asyncio
import functools
import logging
import signal
import time

from pydantic import ValidationError

from jobqueue.config import get_settings
from jobqueue.constants import SPAN_CLAIM_JOB, SPAN_EXECUTE_JOB, JobState
from jobqueue.exceptions import InvalidTransitionError, LostJobError, StoreError
from jobqueue.keys import ids_key, record_key
from jobqueue.lifecycle import claim, finish, mark_lost
from jobqueue.observability.logging import (
    bind_job_context,
    clear_job_context,
    setup_logging,
)
from jobqueue.observability.metrics import MetricsCollector, get_metrics, setup_metrics
from jobqueue.observability.tracing import get_tracer, set_span_attributes, setup_tracing
from jobqueue.store import KeyValueStore, close_store, get_store, init_store
from jobqueue.types.job import FailedStatus, FinishedStatus, JobRecord
from jobqueue.worker.handlers import JobHandler, get_handler, start_handler

logger = logging.getLogger(__name__)

Outcome = FinishedStatus | FailedStatus


class Worker:
    """
    Job worker that claims and supervises jobs from one queue.

    Features:
    - FIFO claims with a bounded blocking pop
    - Wall-clock timeout independent of the handler
    - Record TTL extended while the handler may still run
    - Optional stop on lost jobs (``fatal_on_lost``)
    - Graceful shutdown on SIGTERM/SIGINT
    """

    def __init__(
        self,
        handler: JobHandler,
        queue_name: str | None = None,
        store: KeyValueStore | None = None,
        wait_seconds: int | None = None,
        timeout_seconds: int | None = None,
        polls_per_second: int | None = None,
        result_ttl_seconds: int | None = None,
        fatal_on_lost: bool | None = None,
        run_forever: bool | None = None,
        metrics: MetricsCollector | None = None,
    ):
        """
        Initialize the worker.

        Unset options fall back to the ``worker_*`` settings.

        Args:
            handler: Called as ``handler(job_id, args)`` for each job.
            queue_name: Queue to claim from.
            store: Key-value store. Defaults to the shared store.
            wait_seconds: How long one claim blocks waiting for an id.
            timeout_seconds: How long a handler may run before the job is LOST.
            polls_per_second: How often the handler is checked for completion.
            result_ttl_seconds: Expiry of the record once it is terminal.
            fatal_on_lost: Raise LostJobError out of ``start`` on a lost job.
            run_forever: Keep claiming, or stop after a single claim.
            metrics: Metrics collector. Defaults to the global one.

        Raises:
            ValueError: If a timing option is not positive.
        """
        settings = get_settings()

        self.handler = handler
        self.queue_name = queue_name or settings.queue_name
        self.wait_seconds = (
            settings.worker_wait_seconds if wait_seconds is None else wait_seconds
        )
        self.timeout_seconds = (
            settings.worker_timeout_seconds if timeout_seconds is None else timeout_seconds
        )
        self.polls_per_second = (
            settings.worker_polls_per_second if polls_per_second is None else polls_per_second
        )
        self.result_ttl_seconds = (
            settings.worker_result_ttl_seconds
            if result_ttl_seconds is None
            else result_ttl_seconds
        )
        self.fatal_on_lost = (
            settings.worker_fatal_on_lost if fatal_on_lost is None else fatal_on_lost
        )
        self.run_forever = (
            settings.worker_run_forever if run_forever is None else run_forever
        )

        for name in ("wait_seconds", "timeout_seconds", "polls_per_second", "result_ttl_seconds"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")

        self._store = store
        self._ids_key = ids_key(self.queue_name)
        self._running = False
        self._handler_futures: set[asyncio.Future] = set()
        self._metrics = metrics or get_metrics()

    @property
    def store(self) -> KeyValueStore:
        if self._store is None:
            self._store = get_store()
        return self._store

    @property
    def in_flight(self) -> int:
        """Number of handlers still running, abandoned ones included."""
        return len(self._handler_futures)

    async def start(self) -> None:
        """
        Run the claim loop.

        Returns after one claim when ``run_forever`` is false, or once
        ``stop`` is called.

        Raises:
            StoreError: On any store failure other than a claim timeout.
            LostJobError: If a job is lost and ``fatal_on_lost`` is set.
        """
        logger.info(
            "Worker starting",
            extra={
                "queue": self.queue_name,
                "timeout_seconds": self.timeout_seconds,
                "run_forever": self.run_forever,
            }
        )

        self._running = True

        try:
            while self._running:
                await self.process_next()

                if not self.run_forever:
                    break
        finally:
            self._running = False
            logger.info("Worker stopped", extra={"queue": self.queue_name})

    async def stop(self) -> None:
        """Stop the worker after the current iteration."""
        logger.info("Worker stopping", extra={"queue": self.queue_name})
        self._running = False

    async def process_next(self) -> JobRecord | None:
        """
        Claim, execute and store a single job.

        Returns:
            The terminal record, or None if nothing was claimed.

        Raises:
            StoreError: On store failures.
            LostJobError: If the job is lost and ``fatal_on_lost`` is set.
        """
        record = await self._claim()
        if record is None:
            self._metrics.record_missed_claim(self.queue_name)
            return None

        key = record_key(self.queue_name, record.id)
        bind_job_context(self.queue_name, record.id)
        started = time.monotonic()

        try:
            with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB) as span:
                set_span_attributes(span, job_id=record.id, queue=self.queue_name)

                future = self._spawn(record)
                outcome = await self._supervise(future)

                if outcome is None:
                    record = mark_lost(record)
                    future.add_done_callback(
                        functools.partial(self._discard_late_result, record.id)
                    )
                else:
                    record = finish(record, outcome)

                span.set_attribute("status", record.state.value)

            await self.store.set_with_expiry(
                key, record.to_json(), self.result_ttl_seconds
            )

            duration = time.monotonic() - started
            self._log_outcome(record, duration)
            self._metrics.record_job_completed(
                queue=self.queue_name,
                status=record.state.value,
                duration_seconds=duration,
            )
        finally:
            clear_job_context()

        if record.state == JobState.LOST and self.fatal_on_lost:
            raise LostJobError(record.id, self.timeout_seconds)

        return record

    async def _claim(self) -> JobRecord | None:
        """
        Pop the next id and move its record to RUNNING.

        The RUNNING record is written with ``timeout + result_ttl`` expiry so
        it cannot expire while the handler is still allowed to run.
        """
        with get_tracer().start_as_current_span(SPAN_CLAIM_JOB) as span:
            set_span_attributes(span, queue=self.queue_name)

            job_id = await self.store.blocking_left_pop(self._ids_key, self.wait_seconds)
            if job_id is None:
                logger.debug("No job claimed", extra={"queue": self.queue_name})
                return None

            set_span_attributes(span, job_id=job_id)
            key = record_key(self.queue_name, job_id)

            raw = await self.store.get(key)
            if raw is None:
                # Record expired between enqueue and claim
                logger.warning(
                    "Claimed job has no record",
                    extra={"queue": self.queue_name, "job_id": job_id}
                )
                return None

            try:
                record = JobRecord.from_json(raw)
            except ValidationError as e:
                raise StoreError(f"Malformed job record at {key}") from e

            try:
                record = claim(record)
            except InvalidTransitionError:
                logger.warning(
                    "Claimed job is already terminal",
                    extra={"job_id": job_id, "status": record.state.value}
                )
                return None

            await self.store.set_with_expiry(
                key,
                record.to_json(),
                self.timeout_seconds + self.result_ttl_seconds,
            )

        self._metrics.record_job_claimed(self.queue_name)
        logger.info(
            "Job claimed",
            extra={"job_id": record.id, "args": len(record.args)}
        )
        return record

    def _spawn(self, record: JobRecord) -> asyncio.Future:
        """Start the handler on its own thread; the loop only observes it."""
        future = start_handler(self.handler, record.id, record.args)
        self._handler_futures.add(future)
        future.add_done_callback(self._handler_futures.discard)
        return future

    async def _supervise(self, future: asyncio.Future) -> Outcome | None:
        """
        Poll the handler future until it reports or the poll budget runs out.

        Returns:
            The handler outcome, or None if it is still running after
            ``timeout_seconds * polls_per_second`` polls.
        """
        interval = 1 / self.polls_per_second

        for _ in range(self.timeout_seconds * self.polls_per_second):
            if future.done():
                return future.result()
            await asyncio.sleep(interval)

        return None

    def _discard_late_result(self, job_id: str, future: asyncio.Future) -> None:
        if future.cancelled() or future.exception() is not None:
            return
        logger.info(
            "Discarding result of lost job",
            extra={"job_id": job_id, "status": future.result().state}
        )

    def _log_outcome(self, record: JobRecord, duration: float) -> None:
        extra = {"job_id": record.id, "duration": f"{duration:.2f}s"}

        if record.state == JobState.FINISHED:
            logger.info("Job finished", extra=extra)
        elif record.state == JobState.FAILED:
            logger.warning(
                "Job failed",
                extra={**extra, "error": record.status.message}
            )
        else:
            logger.error(
                "Job lost",
                extra={**extra, "timeout_seconds": self.timeout_seconds}
            )


async def run_async() -> None:
    """Run a worker for the configured queue and handler."""
    settings = get_settings()

    setup_logging()
    setup_tracing()
    setup_metrics(settings.prometheus_port)

    handler = get_handler(settings.worker_handler)
    if handler is None:
        raise ValueError(f"No handler registered: {settings.worker_handler}")

    await init_store()

    worker = Worker(handler)

    # Handle shutdown signals
    loop = asyncio.get_running_loop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(
            sig,
            lambda: asyncio.create_task(worker.stop())
        )

    try:
        await worker.start()
    except LostJobError as e:
        logger.critical(str(e), extra={"job_id": e.job_id})
        raise
    finally:
        await close_store()


def run() -> None:
    """Run the worker."""
    asyncio.run(run_async())


if __name__ == "__main__":
    run()
