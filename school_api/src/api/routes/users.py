from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_tenant_session, require_roles
from src.core.roles import ADMIN, TEACHER
from src.repositories.users import UserRepository
from src.schemas.users import (
    AssignmentRead,
    AssignmentsReplace,
    PromotionRequest,
    PromotionResult,
    StudentRead,
    UserCreate,
    UserRead,
    UserUpdate,
)
from src.services.users import UserService

router = APIRouter(prefix="/schools/{school_code}/portal", tags=["Users"])


# PUBLIC_INTERFACE
@router.get(
    "/users",
    response_model=List[UserRead],
    summary="List users",
    description="List the school's users, optionally filtered by role and active flag.",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def list_users(
    session: AsyncSession = Depends(get_tenant_session),
    role: Optional[str] = Query(None, description="Filter by role"),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[UserRead]:
    users = await UserRepository(session).list_users(role=role, is_active=is_active, limit=limit, offset=offset)
    return [UserRead.model_validate(u) for u in users]


# PUBLIC_INTERFACE
@router.post(
    "/users",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user; student users require a student profile, teacher users get a teacher profile.",
)
async def create_user(
    payload: UserCreate,
    principal: Principal = Depends(require_roles(ADMIN)),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    user = await UserService(session).create_user(payload, actor=principal)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.patch(
    "/users/{user_id}",
    response_model=UserRead,
    summary="Update user",
    description="Update a user. Setting is_active=false deactivates (soft-deletes) the account.",
)
async def update_user(
    payload: UserUpdate,
    user_id: UUID = Path(...),
    principal: Principal = Depends(require_roles(ADMIN)),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    user = await UserService(session).update_user(user_id, payload, actor=principal)
    return UserRead.model_validate(user)


# PUBLIC_INTERFACE
@router.get(
    "/students",
    response_model=List[StudentRead],
    summary="List students",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_students(
    session: AsyncSession = Depends(get_tenant_session),
    class_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    is_active: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[StudentRead]:
    return await UserService(session).list_students(
        class_id=class_id, academic_year_id=academic_year_id, is_active=is_active, limit=limit, offset=offset
    )


# PUBLIC_INTERFACE
@router.post(
    "/students/promote",
    response_model=PromotionResult,
    summary="Promote students",
    description="Move students (by profile id) into a target class and that class's academic year.",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def promote_students(
    payload: PromotionRequest,
    session: AsyncSession = Depends(get_tenant_session),
) -> PromotionResult:
    return await UserService(session).promote(payload)


# PUBLIC_INTERFACE
@router.put(
    "/teachers/{teacher_id}/assignments",
    response_model=List[AssignmentRead],
    summary="Replace teacher assignments",
    description="Replace the full set of class/subject/year assignments of a teacher profile.",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def replace_assignments(
    payload: AssignmentsReplace,
    teacher_id: UUID = Path(..., description="Teacher profile ID"),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[AssignmentRead]:
    rows = await UserService(session).replace_assignments(teacher_id, payload.assignments)
    return [AssignmentRead.model_validate(r) for r in rows]
