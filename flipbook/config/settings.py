from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "flipbook"
    db_username: str = "flipbook"
    db_password: str = "secret"

    files_root: Path = Path("/app/files")
    uploads_root: Path = Path("uploads")
    temp_uploads_root: Path = Path("/tmp/uploads")

    max_file_size: int = Field(default=100 * 1024 * 1024, gt=0)
    min_file_size: int = Field(default=1024, ge=0)
    max_pages: int = Field(default=1000, gt=0)
    processing_timeout: float = Field(default=30 * 60, gt=0)

    queue_max_retries: int = Field(default=3, ge=1)
    queue_retry_delay: float = Field(default=2.0, ge=0)
    queue_concurrency: int = Field(default=2, ge=1)
    queue_rate_limit_max: int = Field(default=5, ge=1)
    queue_rate_limit_window: float = Field(default=60.0, gt=0)
    job_poll_interval_seconds: int = 5

    cleanup_interval_seconds: int = 60 * 60
    max_completed_jobs: int = 10
    max_failed_jobs: int = 50
    access_log_retention_days: int = 90

    cache_ttl: float = Field(default=5 * 60, gt=0)
    cache_max_size: int = Field(default=100, ge=1)

    render_timeout_seconds: float = 30.0
    render_pool_size: int = Field(default=4, ge=1)
    converter_chain: str = "pymupdf,pdfium,pdfplumber"

    pdf_engine: Literal["pdfplumber", "pymupdf"] = "pdfplumber"
    max_text_length: int = Field(default=1024 * 1024, gt=0)

    @field_validator("pdf_engine", mode="before")
    @classmethod
    def _normalize_engine(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value
