"""
Per-school database connection management.

Every school (tenant) owns a PostgreSQL database whose URL is stored on its row in
the central database. Engines are created lazily on the first request for a school
and cached by school code for the life of the process; pooling itself is delegated
to SQLAlchemy.

Example:
    manager = get_tenant_manager()

    async with manager.get_session("greenhill") as session:
        result = await session.execute(select(AcademicYear))

    # On shutdown
    await manager.close_all()
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from src.db.base import TenantBase
from src.db.config import Settings, get_settings, to_async_url

logger = logging.getLogger(__name__)

SchoolUrlLookup = Callable[[str], Awaitable[Optional[str]]]


class TenantNotFoundError(Exception):
    """Raised when a school code does not resolve to a usable database.

    Attributes:
        school_code: The normalized school code that failed to resolve.
    """

    def __init__(self, school_code: str) -> None:
        super().__init__(f"School not found or database URL not configured for {school_code}")
        self.school_code = school_code


# PUBLIC_INTERFACE
def normalize_school_code(school_code: Optional[str]) -> str:
    """Trim and lowercase a school code; raise TenantNotFoundError when it is empty."""
    code = (school_code or "").strip().lower()
    if not code:
        raise TenantNotFoundError("<empty>")
    return code


# PUBLIC_INTERFACE
async def lookup_school_database_url(school_code: str) -> Optional[str]:
    """
    Resolve a school code to its stored database URL using the central database.

    Returns None for unknown or deactivated schools.
    """
    from src.db.session import get_central_sessionmaker
    from src.repositories.schools import SchoolRepository

    async with get_central_sessionmaker()() as session:
        school = await SchoolRepository(session).get_by_code(school_code)
    if school is None or not school.is_active:
        return None
    return school.database_url


class TenantDatabaseManager:
    """Lazily creates, caches and disposes one AsyncEngine per school.

    Attributes:
        settings: Database settings providing pool sizing.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        lookup: Optional[SchoolUrlLookup] = None,
    ) -> None:
        self.settings = settings or get_settings()
        self._lookup = lookup or lookup_school_database_url
        self._engines: Dict[str, AsyncEngine] = {}
        self._sessionmakers: Dict[str, async_sessionmaker[AsyncSession]] = {}
        # Serializes engine creation so concurrent first requests share one pool.
        self._lock = asyncio.Lock()

    async def _get_connection_url(self, school_code: str) -> str:
        url = await self._lookup(school_code)
        if not url:
            raise TenantNotFoundError(school_code)
        return to_async_url(url)

    def _create_engine(self, url: str) -> AsyncEngine:
        return create_async_engine(
            url,
            pool_size=self.settings.TENANT_POOL_SIZE,
            max_overflow=self.settings.TENANT_MAX_OVERFLOW,
            pool_pre_ping=True,
            pool_recycle=self.settings.TENANT_POOL_RECYCLE_SECONDS,
            echo=self.settings.SQL_ECHO,
        )

    async def _get_or_create_sessionmaker(self, school_code: str) -> async_sessionmaker[AsyncSession]:
        """
        Return the cached session factory for a school, creating the engine on first use.

        Raises:
            TenantNotFoundError: unknown/inactive school or no database URL configured.
        """
        code = normalize_school_code(school_code)
        maker = self._sessionmakers.get(code)
        if maker is not None:
            return maker

        async with self._lock:
            maker = self._sessionmakers.get(code)
            if maker is None:
                url = await self._get_connection_url(code)
                engine = self._create_engine(url)
                maker = async_sessionmaker(
                    bind=engine,
                    class_=AsyncSession,
                    expire_on_commit=False,
                    autoflush=False,
                )
                self._engines[code] = engine
                self._sessionmakers[code] = maker
                logger.info("Opened database pool for school %s", code)
        return maker

    # PUBLIC_INTERFACE
    def is_cached(self, school_code: str) -> bool:
        """Return True when an engine for the school is already open."""
        return (school_code or "").strip().lower() in self._engines

    # PUBLIC_INTERFACE
    async def get_engine(self, school_code: str) -> AsyncEngine:
        """Return the (possibly newly created) engine of a school."""
        await self._get_or_create_sessionmaker(school_code)
        return self._engines[normalize_school_code(school_code)]

    # PUBLIC_INTERFACE
    @asynccontextmanager
    async def get_session(self, school_code: str) -> AsyncIterator[AsyncSession]:
        """Yield a session on the school's database.

        The session is committed when the block exits normally and rolled back
        when it raises; the exception is re-raised.

        Raises:
            TenantNotFoundError: If the school cannot be resolved.
        """
        maker = await self._get_or_create_sessionmaker(school_code)
        async with maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    # PUBLIC_INTERFACE
    async def check_connection(self, school_code: str) -> bool:
        """Return True when the school's database answers a trivial query."""
        engine = await self.get_engine(school_code)
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Database for school %s is not reachable", school_code, exc_info=True)
            return False

    # PUBLIC_INTERFACE
    async def create_schema(self, school_code: str) -> None:
        """Create all tenant tables (idempotent) in the school's database."""
        import src.db.models  # noqa: F401  registers every tenant table on TenantBase.metadata

        engine = await self.get_engine(school_code)
        async with engine.begin() as conn:
            await conn.execute(text('CREATE EXTENSION IF NOT EXISTS "pgcrypto"'))
            await conn.run_sync(TenantBase.metadata.create_all)
        logger.info("Tenant schema ensured for school %s", school_code)

    # PUBLIC_INTERFACE
    async def invalidate(self, school_code: str) -> None:
        """Drop and dispose the cached engine of a school (e.g. after its URL changed)."""
        code = (school_code or "").strip().lower()
        async with self._lock:
            self._sessionmakers.pop(code, None)
            engine = self._engines.pop(code, None)
        if engine is not None:
            await engine.dispose()
            logger.info("Closed database pool for school %s", code)

    # PUBLIC_INTERFACE
    async def close_all(self) -> None:
        """Dispose every cached engine."""
        async with self._lock:
            engines = list(self._engines.items())
            self._engines.clear()
            self._sessionmakers.clear()
        for code, engine in engines:
            await engine.dispose()
            logger.info("Closed database pool for school %s", code)


_MANAGER: Optional[TenantDatabaseManager] = None


# PUBLIC_INTERFACE
def get_tenant_manager() -> TenantDatabaseManager:
    """Return the process-wide TenantDatabaseManager."""
    global _MANAGER
    if _MANAGER is None:
        _MANAGER = TenantDatabaseManager()
    return _MANAGER
