"""Unit tests for the per-school connection manager."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.db.config import Settings
from src.db.tenant_manager import TenantDatabaseManager, TenantNotFoundError, normalize_school_code

URLS = {"greenhill": "postgresql://school:pw@localhost:5432/greenhill"}


@pytest.fixture
def lookup():
    async def _lookup(code):
        await asyncio.sleep(0)
        return URLS.get(code)

    return AsyncMock(side_effect=_lookup)


@pytest.fixture
def manager(lookup):
    settings = Settings(POSTGRES_URL="postgresql://central:pw@localhost:5432/central")
    return TenantDatabaseManager(settings=settings, lookup=lookup)


def _fake_maker(session):
    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=session)
    cm.__aexit__ = AsyncMock(return_value=False)
    return MagicMock(return_value=cm)


def test_normalize_school_code():
    assert normalize_school_code("  GreenHill ") == "greenhill"
    with pytest.raises(TenantNotFoundError):
        normalize_school_code("   ")


@pytest.mark.asyncio
async def test_unknown_school_raises(manager):
    with pytest.raises(TenantNotFoundError) as exc:
        await manager.get_engine("nowhere")
    assert "nowhere" in str(exc.value)
    assert not manager.is_cached("nowhere")


@pytest.mark.asyncio
async def test_concurrent_first_requests_share_one_engine(manager, lookup):
    engines = await asyncio.gather(*(manager.get_engine(code) for code in ["greenhill", "GREENHILL", " greenhill"]))

    assert engines[0] is engines[1] is engines[2]
    assert lookup.await_count == 1
    assert manager.is_cached("greenhill")
    assert engines[0].url.drivername == "postgresql+asyncpg"
    await manager.close_all()


@pytest.mark.asyncio
async def test_invalidate_forces_a_new_lookup(manager, lookup):
    await manager.get_engine("greenhill")
    await manager.invalidate("greenhill")
    assert not manager.is_cached("greenhill")

    await manager.get_engine("greenhill")
    assert lookup.await_count == 2
    await manager.close_all()
    assert not manager.is_cached("greenhill")


@pytest.mark.asyncio
async def test_get_session_commits_on_success(manager, mock_db):
    manager._sessionmakers["greenhill"] = _fake_maker(mock_db)

    async with manager.get_session("greenhill") as session:
        assert session is mock_db

    mock_db.commit.assert_awaited_once()
    mock_db.rollback.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_session_rolls_back_and_reraises(manager, mock_db):
    manager._sessionmakers["greenhill"] = _fake_maker(mock_db)

    with pytest.raises(ValueError):
        async with manager.get_session("greenhill"):
            raise ValueError("boom")

    mock_db.rollback.assert_awaited_once()
    mock_db.commit.assert_not_awaited()
