"""
Database package: central database configuration/sessions and the per-school
tenant connection manager.
"""

from .base import CentralBase, TenantBase
from .config import get_settings, Settings
from .session import (
    get_engine,
    get_async_session,
    get_central_sessionmaker,
)
from .tenant_manager import (
    TenantDatabaseManager,
    TenantNotFoundError,
    get_tenant_manager,
)

# Import models to ensure they are registered with SQLAlchemy metadata
# when the db package is imported.
from . import models as models  # noqa: F401

__all__ = [
    "CentralBase",
    "TenantBase",
    "Settings",
    "get_settings",
    "get_engine",
    "get_async_session",
    "get_central_sessionmaker",
    "TenantDatabaseManager",
    "TenantNotFoundError",
    "get_tenant_manager",
    "models",
]
