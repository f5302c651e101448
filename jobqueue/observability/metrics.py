"""
Prometheus metrics collection.
"""

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Histogram,
    start_http_server,
)

from jobqueue.constants import (
    JobState,
    METRIC_JOB_DURATION,
    METRIC_JOBS_CLAIMED,
    METRIC_JOBS_COMPLETED,
    METRIC_JOBS_ENQUEUED,
    METRIC_JOBS_LOST,
    METRIC_MISSED_CLAIMS,
)

# Global metrics instance
_metrics: "MetricsCollector | None" = None


class MetricsCollector:
    """
    Prometheus metrics collector for the job queue.

    Collects metrics for:
    - Job enqueues and claims
    - Job outcomes and execution duration
    - Lost jobs
    - Claims that returned nothing or found an expired record
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize the metrics collector.

        Args:
            registry: Optional custom registry. Uses default if not provided.
        """
        self._registry = registry or REGISTRY

        self.jobs_enqueued = Counter(
            METRIC_JOBS_ENQUEUED,
            "Total number of jobs enqueued",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_claimed = Counter(
            METRIC_JOBS_CLAIMED,
            "Total number of jobs claimed by workers",
            ["queue"],
            registry=self._registry,
        )

        self.jobs_completed = Counter(
            METRIC_JOBS_COMPLETED,
            "Total number of jobs that reached a terminal state",
            ["queue", "status"],
            registry=self._registry,
        )

        self.job_duration = Histogram(
            METRIC_JOB_DURATION,
            "Time from claim to terminal state in seconds",
            ["queue", "status"],
            buckets=(0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
            registry=self._registry,
        )

        self.jobs_lost = Counter(
            METRIC_JOBS_LOST,
            "Total number of jobs lost to the timeout",
            ["queue"],
            registry=self._registry,
        )

        self.missed_claims = Counter(
            METRIC_MISSED_CLAIMS,
            "Claims that timed out or found no record",
            ["queue"],
            registry=self._registry,
        )

    def record_job_enqueued(self, queue: str) -> None:
        """Record a job enqueue."""
        self.jobs_enqueued.labels(queue=queue).inc()

    def record_job_claimed(self, queue: str) -> None:
        """Record a successful claim."""
        self.jobs_claimed.labels(queue=queue).inc()

    def record_missed_claim(self, queue: str) -> None:
        """Record a claim that produced no job."""
        self.missed_claims.labels(queue=queue).inc()

    def record_job_completed(
        self,
        queue: str,
        status: str,
        duration_seconds: float,
    ) -> None:
        """Record a job reaching a terminal state."""
        self.jobs_completed.labels(queue=queue, status=status).inc()
        self.job_duration.labels(queue=queue, status=status).observe(
            duration_seconds
        )
        if status == JobState.LOST:
            self.jobs_lost.labels(queue=queue).inc()


def setup_metrics(port: int | None = None) -> MetricsCollector:
    """
    Set up and return the metrics collector.

    Args:
        port: If given, serve the default registry over HTTP on this port.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    if port is not None:
        start_http_server(port)
    return _metrics


def get_metrics() -> MetricsCollector:
    """
    Get the metrics collector instance.

    Returns:
        MetricsCollector: The metrics collector instance.
    """
    if _metrics is None:
        return setup_metrics()
    return _metrics
