"""Unit tests for school registration and provisioning on the central database."""

from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.core.errors import BadRequestError, ConflictError, NotFoundError
from src.core.roles import ADMIN
from src.schemas.schools import SchoolAdminSeed, SchoolCreate, SchoolUpdate
from src.services import schools as schools_module
from src.services.schools import SchoolService, validate_school_code


@pytest.mark.parametrize("raw,expected", [("greenhill", "greenhill"), (" Mwenge01 ", "mwenge01")])
def test_validate_school_code(raw, expected):
    assert validate_school_code(raw) == expected


@pytest.mark.parametrize("raw", ["green-hill", "green hill", "", "shule_1"])
def test_validate_school_code_rejects(raw):
    with pytest.raises(BadRequestError):
        validate_school_code(raw)


@pytest.fixture
def tenant_session():
    return MagicMock(name="tenant_session")


@pytest.fixture
def tenants(tenant_session):
    manager = MagicMock()
    manager.create_schema = AsyncMock()
    manager.invalidate = AsyncMock()

    @asynccontextmanager
    async def _session(code):
        yield tenant_session

    manager.get_session = _session
    return manager


@pytest.fixture
def school():
    return SimpleNamespace(
        id=uuid4(), name="Greenhill Secondary", school_code="greenhill", database_url="postgresql://x/y", has_database=True
    )


@pytest.fixture
def service(mock_db, tenants, school):
    svc = SchoolService(mock_db, tenants=tenants)
    svc.schools = AsyncMock()
    svc.admins = AsyncMock()
    svc.schools.get_by_code.return_value = school
    svc.schools.create_school.return_value = school
    return svc


@pytest.fixture
def tenant_users(monkeypatch):
    users = AsyncMock()
    users.get_user_by_username.return_value = None
    monkeypatch.setattr(schools_module, "UserRepository", lambda session: users)
    audit = AsyncMock()
    monkeypatch.setattr(schools_module, "AuditService", lambda session: audit)
    return users


def _create(**overrides):
    values = dict(name="Greenhill Secondary", school_code="GreenHill", database_url="postgresql://x/y")
    values.update(overrides)
    return SchoolCreate(**values)


class TestCreateSchool:
    @pytest.mark.asyncio
    async def test_registers_without_provisioning(self, service, tenants, mock_db):
        service.schools.get_by_code.return_value = None

        await service.create_school(_create())

        kwargs = service.schools.create_school.await_args.kwargs
        assert kwargs["school_code"] == "greenhill"
        assert "admin" not in kwargs and "provision" not in kwargs
        mock_db.commit.assert_awaited_once()
        tenants.create_schema.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_code(self, service):
        with pytest.raises(ConflictError):
            await service.create_school(_create())

    @pytest.mark.asyncio
    async def test_admin_seed_requires_provision(self, service):
        service.schools.get_by_code.return_value = None
        with pytest.raises(BadRequestError):
            await service.create_school(_create(admin=SchoolAdminSeed(username="admin", password="secret1")))

    @pytest.mark.asyncio
    async def test_provision_with_admin(self, service, tenants, tenant_users, superadmin):
        service.schools.get_by_code.side_effect = [None, service.schools.create_school.return_value]
        payload = _create(provision=True, admin=SchoolAdminSeed(username=" Head ", password="secret1"))

        await service.create_school(payload, actor=superadmin)

        tenants.create_schema.assert_awaited_once_with("greenhill")
        kwargs = tenant_users.create_user.await_args.kwargs
        assert kwargs["username"] == "head"
        assert kwargs["role"] == ADMIN
        assert kwargs["password_hash"] != "secret1"

    @pytest.mark.asyncio
    async def test_failed_provisioning_unregisters(self, service, school, tenants, tenant_users, mock_db):
        service.schools.get_by_code.side_effect = [None, school]
        tenants.create_schema.side_effect = OSError("connection refused")

        with pytest.raises(OSError):
            await service.create_school(_create(provision=True))

        service.schools.delete.assert_awaited_once_with(school)
        assert mock_db.commit.await_count == 2
        tenants.invalidate.assert_awaited_once_with("greenhill")


class TestProvision:
    @pytest.mark.asyncio
    async def test_taken_username(self, service, tenant_users):
        tenant_users.get_user_by_username.return_value = SimpleNamespace(id=uuid4())
        with pytest.raises(ConflictError):
            await service.provision("greenhill", admin=SchoolAdminSeed(username="admin", password="secret1"))
        tenant_users.create_user.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_school_without_database(self, service, school, tenants):
        school.has_database = False
        with pytest.raises(BadRequestError):
            await service.provision("greenhill")
        tenants.create_schema.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_school(self, service):
        service.schools.get_by_code.return_value = None
        with pytest.raises(NotFoundError):
            await service.provision("nowhere")


@pytest.mark.asyncio
async def test_update_school_drops_cached_engine(service, tenants, school, mock_db):
    service.schools.update_school.return_value = school

    await service.update_school("greenhill", SchoolUpdate(database_url="postgresql://new/db"))

    service.schools.update_school.assert_awaited_once()
    mock_db.commit.assert_awaited_once()
    tenants.invalidate.assert_awaited_once_with("greenhill")
