"""Shared fixtures: a mocked AsyncSession and principals for each kind of caller."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.core.deps import Principal
from src.core.roles import ADMIN, SUPERADMIN, TEACHER


@pytest.fixture
def mock_db():
    """Create mock database session."""
    db = AsyncMock()
    db.add = MagicMock()
    db.add_all = MagicMock()
    db.delete = AsyncMock()
    db.flush = AsyncMock()
    db.commit = AsyncMock()
    db.rollback = AsyncMock()
    db.refresh = AsyncMock()
    db.execute = AsyncMock()

    # Audit writes run inside `async with session.begin_nested()`.
    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=None)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    db.begin_nested = MagicMock(return_value=savepoint)
    return db


@pytest.fixture
def admin():
    return Principal(id=str(uuid4()), role=ADMIN, school_code="greenhill", email="admin@greenhill.ac")


@pytest.fixture
def teacher():
    return Principal(id=str(uuid4()), role=TEACHER, school_code="greenhill", name="Juma Said")


@pytest.fixture
def superadmin():
    return Principal(id=str(uuid4()), role=SUPERADMIN, email="ops@platform.io")
