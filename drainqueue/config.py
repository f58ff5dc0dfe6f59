"""
Queue configuration using Pydantic Settings.
Loads defaults from environment variables prefixed with ``DRAINQUEUE_``.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from drainqueue.constants import DEFAULT_INDEX_NAME, DEFAULT_QUEUE_NAME


class Settings(BaseSettings):
    """Queue settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DRAINQUEUE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Queue defaults
    queue_name: str = DEFAULT_QUEUE_NAME
    index_name: str = DEFAULT_INDEX_NAME
    shift_on_process: bool = False

    # Observability
    metrics_enabled: bool = True
    tracing_enabled: bool = False
    otel_service_name: str = "drainqueue"
    log_level: str = "INFO"
    log_format: str = "console"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
