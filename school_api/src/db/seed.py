"""
Central database seeding.

Seeds:
- The bootstrap super-admin account from SUPERADMIN_EMAIL / SUPERADMIN_PASSWORD / SUPERADMIN_NAME

School data is never seeded here; each school's first admin is created when the
school is provisioned.

Usage:
  python -m src.db.run_migrations upgrade head
  python -m src.db.seed
"""

from __future__ import annotations

import asyncio
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.security import get_password_hash
from src.core.settings import AppSettings, get_app_settings
from src.db.session import get_async_session
from src.repositories.schools import SuperAdminRepository

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """
    Seed the central database with the bootstrap super-admin.

    Skipped (with a warning) when SUPERADMIN_EMAIL or SUPERADMIN_PASSWORD is not configured.
    """
    settings = get_app_settings()
    async for session in get_async_session():
        await _ensure_superadmin(session, settings)
        await session.commit()


async def _ensure_superadmin(session: AsyncSession, settings: AppSettings) -> None:
    """Create the configured super-admin if no account with that email exists yet."""
    if not settings.SUPERADMIN_EMAIL or not settings.SUPERADMIN_PASSWORD:
        logger.warning("SUPERADMIN_EMAIL/SUPERADMIN_PASSWORD not set; skipping super-admin seed")
        return

    repo = SuperAdminRepository(session)
    if await repo.get_by_email(settings.SUPERADMIN_EMAIL):
        logger.info("Super-admin %s already exists", settings.SUPERADMIN_EMAIL)
        return

    await repo.create_user(
        email=settings.SUPERADMIN_EMAIL,
        name=settings.SUPERADMIN_NAME,
        password_hash=get_password_hash(settings.SUPERADMIN_PASSWORD),
    )
    logger.info("Created super-admin %s", settings.SUPERADMIN_EMAIL)


# PUBLIC_INTERFACE
def main() -> None:
    """Entrypoint to run the asynchronous seeding."""
    asyncio.run(seed_all())


if __name__ == "__main__":
    main()
