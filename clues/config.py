"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Instrumentation settings loaded from CLUES_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CLUES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Event publishing: "none", "stdout", "log", "metrics" or a comma-separated list
    publisher: str = "none"

    # Overrides the machine name stamped into job metadata
    hostname: str | None = None

    # Worker
    worker_queues: str = "default"  # comma-separated, polled in order
    worker_poll_interval_seconds: float = 1.0

    # Observability
    metrics_namespace: str = "clues"
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"  # empty disables export
    otel_service_name: str = "queue-clues"
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
