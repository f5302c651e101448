"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from jobqueue.constants import (
    DEFAULT_JOB_TTL_SECONDS,
    DEFAULT_POLLS_PER_SECOND,
    DEFAULT_RESULT_TTL_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_WAIT_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Store
    redis_url: str = "redis://localhost:6379/0"
    queue_name: str = "jobqueue"

    # Producer defaults
    job_ttl_seconds: int = DEFAULT_JOB_TTL_SECONDS

    # Worker Configuration
    worker_wait_seconds: int = DEFAULT_WAIT_SECONDS
    worker_timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS
    worker_polls_per_second: int = DEFAULT_POLLS_PER_SECOND
    worker_result_ttl_seconds: int = DEFAULT_RESULT_TTL_SECONDS
    worker_fatal_on_lost: bool = True
    worker_run_forever: bool = True
    worker_handler: str = "echo"

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "jobqueue"
    prometheus_port: int = 9090
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
