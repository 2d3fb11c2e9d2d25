"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - All secrets come from environment variables (never hardcoded)
    - get_settings() is cached (lru_cache): single instance per process
    - encryption_key is read once; key posture is enforced by
      infrastructure/key_management.py, not here

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - encryption_key defaults to None so a missing key is distinguishable from the
      placeholder (ADR: production refuses to start without a real key)
"""

from functools import lru_cache
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    environment: Literal["development", "test", "production"] = "development"

    # Field encryption: 64 hex chars (32 bytes) in production
    encryption_key: str | None = None

    # Database
    database_url: str = (
        "postgresql+asyncpg://vetcepi:vetcepi@db:5432/vetcepi"
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres URLs come as postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @field_validator("encryption_key", mode="before")
    @classmethod
    def blank_key_is_missing(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v

    database_pool_size: int = 20
    database_max_overflow: int = 10

    # Barcode scanning
    scan_cooldown_ms: int = 2000

    # API
    cors_origins: list[str] = ["http://localhost:5173"]

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
