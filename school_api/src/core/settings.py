from __future__ import annotations

from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Application-level settings for the FastAPI service.

    This is separate from src.db.config.Settings, which covers the central database
    and the tenant connection pools.
    """

    # FastAPI metadata
    APP_NAME: str = Field(default="School Cloud API")
    APP_DESCRIPTION: str = Field(
        default=(
            "Backend API for a multi-tenant school management platform. "
            "Each school is served from its own database; a super-admin layer provisions schools."
        )
    )
    APP_VERSION: str = Field(default="0.1.0")

    # CORS
    CORS_ORIGINS: List[str] = Field(
        default_factory=lambda: ["*"],
        description="Comma-separated list or JSON array of allowed origins. Default: *",
    )
    CORS_ALLOW_CREDENTIALS: bool = Field(default=True)
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    # Startup behavior
    RUN_MIGRATIONS_ON_STARTUP: bool = Field(
        default=True,
        description="If true, run Alembic migrations (upgrade head) on the central database at startup.",
    )
    AUTO_SEED: bool = Field(
        default=False,
        description="If true, ensure the bootstrap super-admin account exists after migrations.",
    )

    # Tokens
    JWT_SECRET_KEY: str = Field(
        default="change-me",
        description="Secret used to sign access and refresh tokens.",
    )
    JWT_ALGORITHM: str = Field(default="HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = Field(default=60)
    REFRESH_TOKEN_EXPIRE_MINUTES: int = Field(default=60 * 24 * 7)

    # Bootstrap super-admin (used by the seed step)
    SUPERADMIN_EMAIL: Optional[str] = Field(default=None)
    SUPERADMIN_PASSWORD: Optional[str] = Field(default=None)
    SUPERADMIN_NAME: str = Field(default="Platform Administrator")

    # Finance defaults
    DEFAULT_CURRENCY: str = Field(default="TZS")

    # Environment label
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    # Automatically load from .env at runtime.
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def _parse_cors_origins(cls, v):
        """
        Accept both JSON array format and comma-separated formats for CORS origins.
        """
        if v is None:
            return ["*"]
        if isinstance(v, str):
            parts = [p.strip() for p in v.split(",") if p.strip()]
            return parts or ["*"]
        if isinstance(v, list):
            return v or ["*"]
        return ["*"]


# PUBLIC_INTERFACE
def get_app_settings() -> AppSettings:
    """Return a new AppSettings instance populated from environment variables."""
    return AppSettings()
