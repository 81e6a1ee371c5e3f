"""Application settings and configuration.

This module defines all configuration options for the Storybook Rank service.
Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Storybook Rank", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Bearer tokens identify the actor for read throttling
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_cookie_name: str = Field(default="storybook_session", alias="SESSION_COOKIE_NAME")

    # Database configuration
    database_url: str = Field(default="sqlite:///./storybook.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Expiring cache used for dedup markers and read throttling
    cache_backend: Literal["redis", "memory"] = Field(default="redis", alias="CACHE_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Rank tiers for books and pages
    book_page_top_n: int = Field(default=15, alias="BOOK_PAGE_TOP_N")
    book_page_freeze_top: int = Field(default=3, alias="BOOK_PAGE_FREEZE_TOP")

    # Rank tiers and duplicate suppression for songs
    song_top_n: int = Field(default=20, alias="SONG_TOP_N")
    song_dedup_ttl_seconds: int = Field(default=300, alias="SONG_DEDUP_TTL_SECONDS")
    song_atomic_increment: bool = Field(default=True, alias="SONG_ATOMIC_INCREMENT")

    # Front door throttling and enqueue uniqueness
    read_throttle_seconds: int = Field(default=300, alias="READ_THROTTLE_SECONDS")
    read_unique_for_seconds: int = Field(default=300, alias="READ_UNIQUE_FOR_SECONDS")
    read_dispatch_delay_seconds: int = Field(default=5, alias="READ_DISPATCH_DELAY_SECONDS")

    # Read-count task queue
    read_queue_sync: bool = Field(default=False, alias="READ_QUEUE_SYNC")
    read_queue_batch_size: int = Field(default=50, alias="READ_QUEUE_BATCH_SIZE")
    read_queue_poll_interval_seconds: float = Field(
        default=1.0,
        alias="READ_QUEUE_POLL_INTERVAL_SECONDS",
    )
    read_queue_max_attempts: int = Field(default=5, alias="READ_QUEUE_MAX_ATTEMPTS")
    read_queue_backoff_seconds: int = Field(default=10, alias="READ_QUEUE_BACKOFF_SECONDS")
    read_queue_max_backoff_seconds: int = Field(
        default=600,
        alias="READ_QUEUE_MAX_BACKOFF_SECONDS",
    )
    read_worker_enabled: bool = Field(default=True, alias="READ_WORKER_ENABLED")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides."""
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def ranking_config(self) -> dict[str, dict[str, float | int | bool]]:
        """Return the rank-tier configuration as a convenience dictionary."""
        return {
            "book_page": {
                "top_n": self.book_page_top_n,
                "freeze_top": self.book_page_freeze_top,
            },
            "song": {
                "top_n": self.song_top_n,
                "dedup_ttl_seconds": self.song_dedup_ttl_seconds,
                "atomic_increment": self.song_atomic_increment,
            },
        }


settings = Settings()
