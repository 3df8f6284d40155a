from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_central_session, require_superadmin
from src.schemas.common import MessageResponse
from src.schemas.schools import (
    SchoolAdminSeed,
    SchoolCreate,
    SchoolRead,
    SchoolUpdate,
    SuperAdminCreate,
    SuperAdminRead,
)
from src.services.schools import SchoolService

router = APIRouter(prefix="/superadmin", tags=["Super Admin"])


# PUBLIC_INTERFACE
@router.get(
    "/schools",
    response_model=List[SchoolRead],
    summary="List schools",
    dependencies=[Depends(require_superadmin)],
)
async def list_schools(
    session: AsyncSession = Depends(get_central_session),
    is_active: Optional[bool] = Query(None, description="Filter by active flag"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[SchoolRead]:
    schools = await SchoolService(session).list_schools(is_active=is_active, limit=limit, offset=offset)
    return [SchoolRead.model_validate(s) for s in schools]


# PUBLIC_INTERFACE
@router.get(
    "/schools/{school_code}",
    response_model=SchoolRead,
    summary="Get school",
    dependencies=[Depends(require_superadmin)],
)
async def get_school(
    school_code: str = Path(..., description="School code"),
    session: AsyncSession = Depends(get_central_session),
) -> SchoolRead:
    return SchoolRead.model_validate(await SchoolService(session).get_school(school_code))


# PUBLIC_INTERFACE
@router.post(
    "/schools",
    response_model=SchoolRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create school",
    description=(
        "Register a school with its own database URL. With provision=true the tenant tables are "
        "created immediately and an optional first admin is seeded."
    ),
)
async def create_school(
    payload: SchoolCreate,
    principal: Principal = Depends(require_superadmin),
    session: AsyncSession = Depends(get_central_session),
) -> SchoolRead:
    school = await SchoolService(session).create_school(payload, actor=principal)
    return SchoolRead.model_validate(school)


# PUBLIC_INTERFACE
@router.patch(
    "/schools/{school_code}",
    response_model=SchoolRead,
    summary="Update school",
    description="Update a school; its cached database connection is dropped so a new URL takes effect.",
    dependencies=[Depends(require_superadmin)],
)
async def update_school(
    payload: SchoolUpdate,
    school_code: str = Path(..., description="School code"),
    session: AsyncSession = Depends(get_central_session),
) -> SchoolRead:
    school = await SchoolService(session).update_school(school_code, payload)
    return SchoolRead.model_validate(school)


# PUBLIC_INTERFACE
@router.post(
    "/schools/{school_code}/provision",
    response_model=MessageResponse,
    summary="Provision school database",
    description="Create (idempotently) every tenant table in the school's database, optionally seeding an admin.",
)
async def provision_school(
    admin: Optional[SchoolAdminSeed] = None,
    school_code: str = Path(..., description="School code"),
    principal: Principal = Depends(require_superadmin),
    session: AsyncSession = Depends(get_central_session),
) -> MessageResponse:
    await SchoolService(session).provision(school_code, admin=admin, actor=principal)
    return MessageResponse(message=f"School '{school_code}' provisioned")


# PUBLIC_INTERFACE
@router.get(
    "/users",
    response_model=List[SuperAdminRead],
    summary="List super-admins",
    dependencies=[Depends(require_superadmin)],
)
async def list_superadmins(
    session: AsyncSession = Depends(get_central_session),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[SuperAdminRead]:
    users = await SchoolService(session).list_superadmins(limit=limit, offset=offset)
    return [SuperAdminRead.model_validate(u) for u in users]


# PUBLIC_INTERFACE
@router.post(
    "/users",
    response_model=SuperAdminRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create super-admin",
    dependencies=[Depends(require_superadmin)],
)
async def create_superadmin(
    payload: SuperAdminCreate,
    session: AsyncSession = Depends(get_central_session),
) -> SuperAdminRead:
    return SuperAdminRead.model_validate(await SchoolService(session).create_superadmin(payload))
