"""Unit tests for login and token refresh."""

from contextlib import asynccontextmanager
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from fastapi import HTTPException

from src.core.roles import ADMIN, SUPERADMIN, TEACHER
from src.core.security import create_access_token, create_refresh_token, decode_token, get_password_hash
from src.services import auth as auth_module
from src.services.auth import AuthService

PASSWORD_HASH = get_password_hash("correct-horse")


@pytest.fixture
def tenant_session():
    session = MagicMock()
    session.commit = AsyncMock()
    return session


@pytest.fixture
def tenants(tenant_session):
    manager = MagicMock()
    manager.opened = []

    @asynccontextmanager
    async def _session(code):
        manager.opened.append(code)
        yield tenant_session

    manager.get_session = _session
    return manager


@pytest.fixture
def school_users(monkeypatch):
    users = AsyncMock()
    audit = AsyncMock()
    monkeypatch.setattr(auth_module, "UserRepository", lambda session: users)
    monkeypatch.setattr(auth_module, "AuditService", lambda session: audit)
    users.audit = audit
    return users


@pytest.fixture
def service(mock_db, tenants):
    svc = AuthService(mock_db, tenants=tenants)
    svc.admins = AsyncMock()
    return svc


def _school_user(**overrides):
    values = dict(
        id=uuid4(),
        username="mwalimu",
        email="mwalimu@greenhill.ac",
        full_name="Mwalimu Hassan",
        role=TEACHER,
        password_hash=PASSWORD_HASH,
        is_active=True,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


class TestSuperAdminLogin:
    @pytest.mark.asyncio
    async def test_success(self, service, mock_db):
        admin = SimpleNamespace(
            id=uuid4(), email="ops@platform.io", name="Ops", password_hash=PASSWORD_HASH, is_active=True
        )
        service.admins.get_by_email.return_value = admin

        tokens = await service.login("ops@platform.io", "correct-horse")

        claims = decode_token(tokens.access_token)
        assert claims["role"] == SUPERADMIN
        assert claims["school_code"] is None
        assert tokens.school_code is None
        assert admin.last_login is not None
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wrong_password(self, service):
        service.admins.get_by_email.return_value = SimpleNamespace(password_hash=PASSWORD_HASH, is_active=True)
        with pytest.raises(HTTPException) as exc:
            await service.login("ops@platform.io", "wrong", "  ")
        assert exc.value.status_code == 401


class TestSchoolLogin:
    @pytest.mark.asyncio
    async def test_success_uses_normalized_school(self, service, tenants, school_users):
        user = _school_user()
        school_users.get_user_by_login.return_value = user

        tokens = await service.login("mwalimu", "correct-horse", " GreenHill ")

        assert tenants.opened == ["greenhill"]
        claims = decode_token(tokens.access_token)
        assert claims["school_code"] == "greenhill"
        assert claims["role"] == TEACHER
        assert claims["name"] == "Mwalimu Hassan"
        assert school_users.audit.log.await_args.args[0] == "LOGIN_SUCCESS"

    @pytest.mark.asyncio
    async def test_bad_password_is_audited(self, service, school_users, tenant_session):
        school_users.get_user_by_login.return_value = _school_user()

        with pytest.raises(HTTPException) as exc:
            await service.login("mwalimu", "nope", "greenhill", ip_address="10.0.0.7")

        assert exc.value.status_code == 401
        assert school_users.audit.log.await_args.args[0] == "LOGIN_FAIL"
        assert school_users.audit.log.await_args.kwargs["ip_address"] == "10.0.0.7"
        tenant_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_inactive_account(self, service, school_users):
        school_users.get_user_by_login.return_value = _school_user(is_active=False)
        with pytest.raises(HTTPException) as exc:
            await service.login("mwalimu", "correct-horse", "greenhill")
        assert exc.value.status_code == 403


class TestRefresh:
    @pytest.mark.asyncio
    async def test_access_token_is_refused(self, service):
        token = create_access_token(str(uuid4()), ADMIN, "greenhill")
        with pytest.raises(HTTPException) as exc:
            await service.refresh(token)
        assert exc.value.status_code == 401

    @pytest.mark.asyncio
    async def test_school_user_refresh(self, service, school_users):
        user = _school_user(role=ADMIN)
        school_users.get_user_by_id.return_value = user

        tokens = await service.refresh(create_refresh_token(str(user.id), ADMIN, "greenhill"))

        assert decode_token(tokens.access_token)["sub"] == str(user.id)
        assert tokens.school_code == "greenhill"

    @pytest.mark.asyncio
    async def test_deactivated_user_cannot_refresh(self, service, school_users):
        user = _school_user(is_active=False)
        school_users.get_user_by_id.return_value = user
        with pytest.raises(HTTPException):
            await service.refresh(create_refresh_token(str(user.id), TEACHER, "greenhill"))

    @pytest.mark.asyncio
    async def test_superadmin_refresh(self, service):
        admin = SimpleNamespace(id=uuid4(), email="ops@platform.io", name="Ops", is_active=True)
        service.admins.get_by_id.return_value = admin

        tokens = await service.refresh(create_refresh_token(str(admin.id), SUPERADMIN))

        assert tokens.role == SUPERADMIN
