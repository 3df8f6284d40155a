"""Unit tests for password hashing, tokens and role dependencies."""

from uuid import uuid4

import pytest
from fastapi import HTTPException

from src.core.deps import Principal, get_current_principal, require_roles, require_superadmin
from src.core.roles import ADMIN, FINANCE, SUPERADMIN, TEACHER
from src.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    get_password_hash,
    verify_password,
)


def test_password_hash_roundtrip():
    hashed = get_password_hash("s3cret-pass")
    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


def test_access_token_claims():
    user_id = str(uuid4())
    token = create_access_token(user_id, ADMIN, "greenhill", extra={"email": "a@b.c", "name": "Ann"})
    claims = decode_token(token)
    assert claims["sub"] == user_id
    assert claims["role"] == ADMIN
    assert claims["school_code"] == "greenhill"
    assert claims["type"] == "access"
    assert claims["email"] == "a@b.c"


@pytest.mark.asyncio
async def test_principal_from_access_token():
    user_id = str(uuid4())
    principal = await get_current_principal(create_access_token(user_id, TEACHER, "greenhill"))
    assert principal.id == user_id
    assert principal.role == TEACHER
    assert str(principal.tenant_user_id) == user_id


@pytest.mark.asyncio
async def test_refresh_token_is_not_an_access_token():
    token = create_refresh_token(str(uuid4()), ADMIN, "greenhill")
    with pytest.raises(HTTPException) as exc:
        await get_current_principal(token)
    assert exc.value.status_code == 401


@pytest.mark.asyncio
async def test_garbage_token_is_rejected():
    with pytest.raises(HTTPException) as exc:
        await get_current_principal("not-a-jwt")
    assert exc.value.status_code == 401


def test_superadmin_has_no_tenant_user_id(superadmin):
    assert superadmin.is_superadmin
    assert superadmin.tenant_user_id is None


@pytest.mark.asyncio
async def test_require_roles_matches_school_case_insensitively(admin):
    dep = require_roles(ADMIN, FINANCE)
    assert await dep(school_code="GreenHill", principal=admin) is admin


@pytest.mark.asyncio
async def test_require_roles_rejects_other_school(admin):
    dep = require_roles(ADMIN)
    with pytest.raises(HTTPException) as exc:
        await dep(school_code="riverside", principal=admin)
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_require_roles_rejects_wrong_role(teacher):
    dep = require_roles(ADMIN, FINANCE)
    with pytest.raises(HTTPException) as exc:
        await dep(school_code="greenhill", principal=teacher)
    assert exc.value.status_code == 403


@pytest.mark.asyncio
async def test_superadmin_passes_unless_excluded(superadmin):
    assert await require_roles(ADMIN)(school_code="anyschool", principal=superadmin) is superadmin
    with pytest.raises(HTTPException):
        await require_roles(TEACHER, allow_superadmin=False)(school_code="anyschool", principal=superadmin)


@pytest.mark.asyncio
async def test_require_superadmin(admin, superadmin):
    assert await require_superadmin(superadmin) is superadmin
    with pytest.raises(HTTPException) as exc:
        await require_superadmin(admin)
    assert exc.value.status_code == 403


def test_principal_belongs_to():
    p = Principal(id=str(uuid4()), role=SUPERADMIN)
    assert not p.belongs_to("greenhill")
