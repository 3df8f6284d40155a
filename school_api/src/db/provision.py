"""
Provision a school's own database from the command line.

Creates every tenant table in the database registered for the school and,
optionally, its first admin account.

Usage examples:
    python -m src.db.provision greenhill
    python -m src.db.provision greenhill --admin-username admin --admin-password s3cret!
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from src.core.errors import AppError
from src.core.logging import configure_logging
from src.db.session import dispose_engine, get_central_sessionmaker
from src.db.tenant_manager import TenantNotFoundError, get_tenant_manager
from src.schemas.schools import SchoolAdminSeed
from src.services.schools import SchoolService

logger = logging.getLogger(__name__)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m src.db.provision", description=__doc__.strip().splitlines()[0])
    parser.add_argument("school_code", help="Code of a school registered in the central database")
    parser.add_argument("--admin-username", help="Seed a first school admin with this username")
    parser.add_argument("--admin-password", help="Password of the seeded admin")
    parser.add_argument("--admin-email", default=None)
    return parser


async def provision(school_code: str, admin: Optional[SchoolAdminSeed] = None) -> None:
    tenants = get_tenant_manager()
    try:
        async with get_central_sessionmaker()() as session:
            await SchoolService(session, tenants=tenants).provision(school_code, admin=admin)
    finally:
        await tenants.close_all()
        await dispose_engine()


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> int:
    """Parse arguments and provision the school; returns a process exit code."""
    args = _parser().parse_args(argv)
    admin = None
    if args.admin_username or args.admin_password:
        if not (args.admin_username and args.admin_password):
            print("--admin-username and --admin-password must be given together")
            return 2
        admin = SchoolAdminSeed(
            username=args.admin_username, password=args.admin_password, email=args.admin_email
        )

    configure_logging()
    try:
        asyncio.run(provision(args.school_code.strip().lower(), admin))
    except (AppError, TenantNotFoundError) as exc:
        logger.error("Provisioning failed: %s", exc)
        return 1
    logger.info("School %s provisioned", args.school_code)
    return 0


if __name__ == "__main__":
    sys.exit(main())
