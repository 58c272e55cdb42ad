"""Library Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Every setting can be overridden with a WTLIBS_-prefixed environment variable
    - get_settings() is cached (lru_cache) — single instance per process

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for all settings: works out-of-the-box against a local sqlite file
"""

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Library settings from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="WTLIBS_", env_file=".env", case_sensitive=False,
    )

    # Scheme used for documents of newly created hotels
    default_data_storage: str = "json"

    # HTTP document host
    http_timeout_seconds: float = 30.0
    http_max_retries: int = 3
    http_base_delay_ms: int = 500
    http_max_delay_ms: int = 10_000
    http_upload_url: str | None = None

    # Database document store
    database_url: str = "sqlite+aiosqlite:///wtlibs-documents.db"

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_sqlite_url(cls, v: str) -> str:
        """Plain sqlite:// URLs need the aiosqlite driver for async engines."""
        if isinstance(v, str) and v.startswith("sqlite://"):
            return v.replace("sqlite://", "sqlite+aiosqlite://", 1)
        return v

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
