"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore")

    redis_url: str = "redis://redis:6379"
    storage_backend: str = "redis"
    service_name: str = "textindex"
    service_host: str = "0.0.0.0"
    service_port: int = 8000
    log_level: str = "INFO"

    # Tenant addressing
    service_domain: str = "txt2mcp.com"
    public_url_template: str = "https://{id}.txt2mcp.com/mcp"
    content_id_length: int = 24

    # Content ingestion
    max_upload_bytes: int = 10 * 1024 * 1024
    fetch_timeout_seconds: float = 20.0
    refresh_interval_seconds: int = 3600

    chunk_size: int = 2000
    min_chars_per_chunk: int = 200
    default_k: int = 5

    blob_list_limit: int = 1000

    # Retry configuration
    max_retries: int = 3
    retry_delay_seconds: float = 1.0
    retry_backoff_multiplier: float = 2.0

    # Connection pooling
    redis_pool_size: int = 10


settings = Settings()
