"""
Alembic runner for the central database.

Only the school registry and super-admin tables live under Alembic; each
school's own database is created by provisioning instead.

Usage examples:
    python -m src.db.run_migrations upgrade
    python -m src.db.run_migrations downgrade -1
    python -m src.db.run_migrations current
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from alembic import command
from alembic.config import Config

from src.db.config import get_settings

MIGRATIONS_DIR = Path(__file__).resolve().parent / "migrations"


# PUBLIC_INTERFACE
def build_config() -> Config:
    """Alembic config pointing at the bundled migrations and the central database URL."""
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", get_settings().sync_database_url)
    return cfg


# PUBLIC_INTERFACE
def upgrade_central(revision: str = "head") -> None:
    """Bring the central schema up to ``revision``. Blocking; call from a worker thread inside an event loop."""
    command.upgrade(build_config(), revision)


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="python -m src.db.run_migrations", description=__doc__.strip().splitlines()[0])
    sub = parser.add_subparsers(dest="command", required=True)
    up = sub.add_parser("upgrade", help="Apply migrations")
    up.add_argument("revision", nargs="?", default="head")
    down = sub.add_parser("downgrade", help="Revert migrations")
    down.add_argument("revision", nargs="?", default="-1")
    sub.add_parser("current", help="Show the applied revision")
    sub.add_parser("history", help="List known revisions")
    return parser


# PUBLIC_INTERFACE
def main(argv: List[str] | None = None) -> int:
    """Dispatch one Alembic command against the central database; returns a process exit code."""
    args = _parser().parse_args(argv)
    if args.command == "upgrade":
        upgrade_central(args.revision)
    elif args.command == "downgrade":
        command.downgrade(build_config(), args.revision)
    elif args.command == "current":
        command.current(build_config(), verbose=True)
    else:
        command.history(build_config())
    return 0


if __name__ == "__main__":
    sys.exit(main())
