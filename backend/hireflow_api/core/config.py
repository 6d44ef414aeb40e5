"""Application-wide settings for the rate limiting and usage tracking service."""
from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Global application configuration."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = Field(
        default="sqlite+aiosqlite:///storage/hireflow.db", env="DATABASE_URL"
    )
    database_echo: bool = Field(default=False, env="DATABASE_ECHO")
    # Create tables on startup; deployments run alembic instead
    database_create_tables: bool = Field(default=True, env="DATABASE_CREATE_TABLES")
    # Basic auth for admin endpoints (optional)
    auth_basic_username: Optional[str] = Field(default=None, env="AUTH_BASIC_USERNAME")
    auth_basic_password_hash: Optional[str] = Field(
        default=None, env="AUTH_BASIC_PASSWORD_HASH"
    )
    auth_basic_password_plain: Optional[str] = Field(
        default=None, env="AUTH_BASIC_PASSWORD_PLAIN"
    )
    # Environment used for keys issued without an explicit one (live|test)
    api_key_environment: Literal["live", "test"] = Field(default="live", env="API_KEY_ENVIRONMENT")
    # Rate limiting middleware
    rate_limit_path_prefix: str = Field(default="/api/v1", env="RATE_LIMIT_PATH_PREFIX")
    rate_limit_anonymous_paths: tuple[str, ...] = Field(
        default=("/api/v1/public",), env="RATE_LIMIT_ANONYMOUS_PATHS"
    )
    rate_limit_max_keys: int = Field(default=100_000, env="RATE_LIMIT_MAX_KEYS")
    rate_limit_sweep_interval_seconds: int = Field(
        default=300, env="RATE_LIMIT_SWEEP_INTERVAL_SECONDS"
    )
    usage_stats_max_days: int = Field(default=365, env="USAGE_STATS_MAX_DAYS")
    log_level: str = Field(default="INFO", env="LOG_LEVEL")


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
