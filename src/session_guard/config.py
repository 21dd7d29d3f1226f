"""Centralized application configuration via environment variables."""

from enum import StrEnum
from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(StrEnum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    The rate limiting fields are the policy knobs of the engine.
    They are turned into an immutable ``RateLimitPolicy`` once at
    startup; the engine never reads settings directly.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App ---
    environment: Environment = Environment.DEVELOPMENT
    log_level: str = "DEBUG"
    # --- CORS ---
    cors_allowed_origins: list[str] = []
    cors_allow_credentials: bool = False
    cors_allowed_methods: list[str] = ["GET", "POST", "DELETE"]
    cors_allowed_headers: list[str] = ["Content-Type", "X-Admin-Key"]

    # --- Rate limiting ---
    rate_limit_enabled: bool = True
    idea_limit: int = Field(default=6, gt=0)
    idea_window_ms: int = Field(default=60_000, gt=0)
    session_capacity: int = Field(default=50, gt=0)
    violations_before_block: int = Field(default=3, gt=0)
    block_duration_ms: int = Field(default=5 * 60 * 1000, gt=0)
    # Rate state idle for this many windows is evicted by the reaper.
    staleness_multiplier: int = Field(default=10, gt=0)
    reaper_interval_seconds: float = Field(default=300.0, gt=0)

    # --- Server ---
    host: str = "127.0.0.1"
    port: int = Field(default=8000, gt=0, lt=65536)

    # --- Admin ---
    # Admin routes are disabled while this is unset.
    admin_api_key: SecretStr | None = None

    # --- Convenience properties ---
    @property
    def is_dev(self) -> bool:
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_prod(self) -> bool:
        return self.environment == Environment.PRODUCTION


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings singleton.

    Usage::

        from session_guard.config import get_settings
        settings = get_settings()
    """
    return Settings()


settings = get_settings()
