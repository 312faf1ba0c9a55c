"""
Application Configuration
=========================

Centralized configuration using Pydantic Settings.
Loads from environment variables with validation.

The same settings object drives both sides of the repo: the task
resource server and the offline sync client.
"""

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    ENVIRONMENT: str = Field(default="development")
    LOG_LEVEL: str = Field(default="INFO")

    # Development Settings
    DEV_AUTH_DISABLED: bool = Field(
        default=False,
        description="Disable authentication for local development/testing"
    )

    # Task resource server
    TASK_REPOSITORY: Literal["memory", "sql"] = Field(default="memory")
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./worksuite.db")
    ALLOWED_ORIGINS: str = Field(default="http://localhost:5173,http://localhost:4000")

    # JWT Authentication (verification only; tokens are issued elsewhere)
    JWT_SECRET: str = Field(default="change-this-secret-in-production")
    JWT_ALGORITHM: str = Field(default="HS256")
    JWT_ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=1440)  # 24 hours

    # Sync client: transport
    API_BASE_URL: str = Field(default="http://localhost:4000")
    REQUEST_TIMEOUT_SECONDS: float = Field(default=10.0, gt=0)

    # Sync client: local durable storage
    OFFLINE_STORE_BACKEND: Literal["memory", "file", "redis"] = Field(default="file")
    OFFLINE_STORE_PATH: str = Field(default=".local/worksuite")
    OFFLINE_STORE_PREFIX: str = Field(default="worksuite:offline")
    REDIS_URL: str = Field(default="redis://localhost:6379/0")
    STORAGE_FAIL_SILENTLY: bool = Field(
        default=True,
        description="Swallow local storage write errors instead of raising",
    )

    # Sync client: replay policy
    REPLAY_DROP_REJECTED: bool = Field(
        default=True,
        description="Drop queued operations the server rejects with a permanent 4xx",
    )

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse ALLOWED_ORIGINS into a list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]

    @property
    def database_url_async(self) -> str:
        """Convert a plain postgres URL to the asyncpg driver; others pass through."""
        for prefix in ("postgresql://", "postgres://"):
            if self.DATABASE_URL.startswith(prefix):
                return "postgresql+asyncpg://" + self.DATABASE_URL[len(prefix):]
        return self.DATABASE_URL

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.ENVIRONMENT.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.ENVIRONMENT.lower() == "development"

    @property
    def auth_disabled(self) -> bool:
        """Check if auth is disabled (only allowed in development)."""
        return self.is_development and self.DEV_AUTH_DISABLED

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_jwt_secret(cls, v: str) -> str:
        """Ensure JWT secret is sufficiently long."""
        if len(v) < 32:
            raise ValueError("JWT_SECRET must be at least 32 characters long")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Export a default settings instance
settings = get_settings()
