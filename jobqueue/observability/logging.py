"""
Structured logging setup using structlog.
"""

import logging
import sys
from typing import Any

import structlog
from opentelemetry import trace

from jobqueue.config import get_settings


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Add OpenTelemetry trace context to log records.

    Args:
        logger: The logger instance.
        method_name: The method name being called.
        event_dict: The event dictionary.

    Returns:
        The event dictionary with trace context added.
    """
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


# Floor levels for third-party loggers. Both are noisy when a backend is
# down: the redis client while reconnecting, the OTLP exporter on every
# retry against an absent collector.
LIBRARY_LOG_LEVELS: dict[str, int] = {
    "redis": logging.WARNING,
    "opentelemetry.exporter.otlp.proto.grpc.exporter": logging.ERROR,
}


def _shared_processors() -> list[Any]:
    """Processors applied to structlog and stdlib records alike."""
    return [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.ExtraAdder(),
    ]


def _build_formatter(log_format: str, shared: list[Any]) -> logging.Formatter:
    if log_format == "json":
        final: list[Any] = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final = [structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())]

    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *final],
    )


def setup_logging(log_level: str | None = None, log_format: str | None = None) -> None:
    """
    Route structlog and stdlib logging through one stdout handler.

    Module loggers (``logging.getLogger(__name__)`` with ``extra=``) and
    structlog loggers both end up with the bound job context, the current
    trace ids and the same renderer.

    Args:
        log_level: Overrides the configured log level.
        log_format: Overrides the configured format, ``json`` or ``console``.
    """
    settings = get_settings()
    level = logging.getLevelName((log_level or settings.log_level).upper())
    if not isinstance(level, int):
        level = logging.INFO

    shared = _shared_processors()
    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_build_formatter(log_format or settings.log_format, shared))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    for name, floor in LIBRARY_LOG_LEVELS.items():
        logging.getLogger(name).setLevel(max(level, floor))


def bind_job_context(queue_name: str, job_id: str) -> None:
    """Attach the queue and job id to every log line until cleared."""
    structlog.contextvars.bind_contextvars(queue=queue_name, job_id=job_id)


def clear_job_context() -> None:
    """Drop the job context bound by ``bind_job_context``."""
    structlog.contextvars.unbind_contextvars("queue", "job_id")
