"""Application configuration using pydantic-settings."""

from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_path: Path = Path("sales_tracker.db")
    database_dsn: Optional[str] = None

    # Connection pool
    pool_size: int = 10
    max_overflow: int = 20
    pool_recycle: int = 1800
    pool_timeout: int = 30

    # Retry policy for transient storage errors
    retry_attempts: int = 3
    retry_delay: float = 0.1
    retry_backoff: float = 2.0

    # Analytics
    max_range_days: int = 365
    query_timeout: Optional[float] = 30.0

    # Pagination
    default_page_size: int = 25
    max_page_size: int = 100

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"

    @property
    def database_url(self) -> str:
        """Get the DSN, falling back to a SQLite file URL."""
        if self.database_dsn:
            return self.database_dsn
        return f"sqlite:///{self.database_path}"

    @property
    def max_range(self) -> timedelta:
        return timedelta(days=self.max_range_days)


settings = Settings()
