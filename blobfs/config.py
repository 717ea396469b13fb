"""
Application configuration using Pydantic Settings.
Loads configuration from environment variables with sensible defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # AWS credentials (validated when clients are built, not here)
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None
    aws_region: str = "eu-west-1"
    aws_endpoint_url: str | None = None

    # Object store
    s3_bucket: str = "blobfs"

    # Lock arbitration queue
    lock_queue_name: str = "blobfs-lock.fifo"
    lock_group_id: str = "default"
    lock_visibility_timeout_seconds: int = 30
    lock_heartbeat_interval_seconds: float = 10.0
    lock_poll_interval_seconds: float = 0.0
    lock_poll_jitter_seconds: float = 0.05
    lock_receive_wait_seconds: int = 0

    # Observability
    otel_exporter_otlp_endpoint: str = "http://localhost:4317"
    otel_service_name: str = "blobfs"
    prometheus_port: int | None = None
    log_level: str = "INFO"
    log_format: str = "json"  # json or console


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
