"""
Unit tests for logging, metrics and tracing setup.
"""

import logging

import pytest
import structlog

from jobqueue.observability.logging import (
    bind_job_context,
    clear_job_context,
    setup_logging,
)
from jobqueue.observability.metrics import MetricsCollector
from jobqueue.observability.tracing import get_tracer, set_span_attributes


class TestLogging:
    """Tests for structured logging setup."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        """Put back the root logger configuration after each test."""
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    def test_setup_logging_overrides(self):
        """Test explicit level and format take precedence."""
        setup_logging(log_level="debug", log_format="console")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)

    def test_json_output(self, capsys):
        """Test stdlib records are rendered as JSON with extra fields."""
        setup_logging(log_level="INFO", log_format="json")

        logging.getLogger("jobqueue.test").info("Job claimed", extra={"job_id": "j-1"})

        out = capsys.readouterr().out
        assert '"event": "Job claimed"' in out
        assert '"job_id": "j-1"' in out
        assert '"logger": "jobqueue.test"' in out

    def test_library_loggers_quieted(self):
        """Test redis and OTLP exporter loggers get a level floor."""
        setup_logging(log_level="INFO", log_format="json")

        assert logging.getLogger("redis").level == logging.WARNING
        assert logging.getLogger(
            "opentelemetry.exporter.otlp.proto.grpc.exporter"
        ).level == logging.ERROR
        assert logging.getLogger("jobqueue.worker").getEffectiveLevel() == logging.INFO

    def test_library_floor_never_lowers_level(self):
        """Test a stricter root level also applies to library loggers."""
        setup_logging(log_level="CRITICAL", log_format="json")

        assert logging.getLogger("redis").level == logging.CRITICAL

    def test_unknown_level_falls_back_to_info(self):
        """Test an unrecognised level name means INFO."""
        setup_logging(log_level="chatty", log_format="json")

        assert logging.getLogger().level == logging.INFO

    def test_job_context(self):
        """Test binding and clearing the job context."""
        bind_job_context("emails", "j-1")
        assert structlog.contextvars.get_contextvars() == {"queue": "emails", "job_id": "j-1"}

        clear_job_context()
        assert structlog.contextvars.get_contextvars() == {}


class TestMetrics:
    """Tests for the metrics collector."""

    def test_lost_jobs_counted(self, metrics: MetricsCollector, registry):
        """Test a LOST completion also counts as a lost job."""
        metrics.record_job_completed(queue="q", status="lost", duration_seconds=1.0)
        metrics.record_job_completed(queue="q", status="finished", duration_seconds=0.1)

        assert registry.get_sample_value("jobs_lost_total", {"queue": "q"}) == 1
        assert registry.get_sample_value(
            "job_duration_seconds_count", {"queue": "q", "status": "finished"}
        ) == 1


class TestTracing:
    """Tests for tracing helpers."""

    def test_span_attributes_skip_none(self):
        """Test None attributes are not set."""
        recorded = {}

        class Span:
            def set_attribute(self, key, value):
                recorded[key] = value

        set_span_attributes(Span(), job_id="j-1", queue=None, attempt=2)

        assert recorded == {"job_id": "j-1", "attempt": "2"}

    def test_get_tracer_without_setup(self):
        """Test spans can be opened before tracing is configured."""
        with get_tracer().start_as_current_span("test") as span:
            assert span is not None
