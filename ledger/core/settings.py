"""Configuration and environment settings for the Statement Ledger service."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings for the Statement Ledger service."""

    groq_api_key: str | None = None
    classifier_model: str = "llama-3.3-70b-versatile"
    classifier_temperature: float = 0.0
    classifier_max_completion_tokens: int = 200
    classifier_min_interval: float = 0.25
    classifier_backoff: tuple[float, ...] = (1.0, 2.0, 4.0)
    classifier_timeout: float = 20.0
    default_category: str = "Entertainment"
    database_url: str = "sqlite:///./ledger.db"
    worker_count: int = 2
    max_pending_jobs: int = 20
    max_upload_bytes: int = 10 * 1024 * 1024
    progress_flush_every: int = 10
    reject_unparsable_dates: bool = True
    seed_defaults: bool = True
    log_dir: str = "logs"
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Return the cached application settings."""
    return Settings()
