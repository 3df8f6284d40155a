from __future__ import annotations

import re
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def to_async_url(url: str) -> str:
    """Normalize a PostgreSQL URL to the asyncpg driver required by AsyncEngine."""
    if url.startswith("postgresql+asyncpg://"):
        return url
    # Accept the common postgres:// alias as well as explicit driver markers
    return re.sub(r"^postgres(?:ql)?(\+\w+)?://", "postgresql+asyncpg://", url)


def to_sync_url(url: str) -> str:
    """Strip any driver marker, returning a plain postgresql:// URL."""
    return re.sub(r"^postgres(?:ql)?(\+\w+)?://", "postgresql://", url)


class Settings(BaseSettings):
    """
    Database settings for the central (super-admin) database and tenant connection pools.

    The central database holds schools and super-admin accounts. Each school's own
    database URL is stored on its School row and resolved at request time.

    Reads from environment variables (or .env via pydantic-settings):
      - POSTGRES_URL
      - POSTGRES_USER
      - POSTGRES_PASSWORD
      - POSTGRES_DB
      - POSTGRES_PORT
    """

    # Central database
    POSTGRES_URL: Optional[str] = Field(
        default=None, description="If provided, full PostgreSQL connection URL of the central database."
    )
    POSTGRES_USER: Optional[str] = Field(default=None, description="DB username")
    POSTGRES_PASSWORD: Optional[str] = Field(default=None, description="DB password")
    POSTGRES_DB: Optional[str] = Field(default=None, description="Database name")
    POSTGRES_PORT: Optional[int] = Field(
        default=5432, description="Database port (default 5432)"
    )
    POSTGRES_HOST: Optional[str] = Field(
        default="localhost", description="Database host (default localhost)"
    )

    # SQLAlchemy engine options
    SQL_ECHO: bool = Field(
        default=False, description="Echo SQL statements for debugging (default False)"
    )

    # Tenant engine pools (one pool per school database)
    TENANT_POOL_SIZE: int = Field(default=5, ge=1)
    TENANT_MAX_OVERFLOW: int = Field(default=10, ge=0)
    TENANT_POOL_RECYCLE_SECONDS: int = Field(default=1800, ge=0)

    # General environment
    ENVIRONMENT: Optional[str] = Field(
        default=None, description="Environment label (dev/test/prod)"
    )

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @property
    def database_url(self) -> str:
        """
        Compute the base central database URL. Will prefer POSTGRES_URL
        if present, otherwise construct from individual POSTGRES_* variables.
        """
        if self.POSTGRES_URL:
            return self.POSTGRES_URL

        if not all([self.POSTGRES_USER, self.POSTGRES_PASSWORD, self.POSTGRES_DB]):
            raise ValueError(
                "Database configuration missing. Ensure POSTGRES_URL or "
                "POSTGRES_USER, POSTGRES_PASSWORD, and POSTGRES_DB are set in the environment."
            )
        host = self.POSTGRES_HOST or "localhost"
        port = self.POSTGRES_PORT or 5432
        return f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{host}:{port}/{self.POSTGRES_DB}"

    @property
    def async_database_url(self) -> str:
        """Central database URL using the asyncpg driver."""
        return to_async_url(self.database_url)

    @property
    def sync_database_url(self) -> str:
        """
        Plain postgresql:// variant for Alembic offline mode. Online migrations use
        the async URL, so no sync driver is required.
        """
        return to_sync_url(self.database_url)


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return a settings object populated from the environment."""
    return Settings()
