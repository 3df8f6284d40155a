from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_tenant_session, require_roles
from src.core.roles import ADMIN, DORMITORY_MASTER
from src.repositories.dormitory import DormitoryRepository
from src.schemas.common import MessageResponse
from src.schemas.dormitory import (
    DormitoryCreate,
    DormitoryRead,
    RoomCreate,
    RoomRead,
    RoomUpdate,
    UnallocatedStudent,
)
from src.services.dormitory import DormitoryService

router = APIRouter(prefix="/schools/{school_code}/portal/dormitory", tags=["Dormitory"])

_dorm_staff = require_roles(ADMIN, DORMITORY_MASTER)


# PUBLIC_INTERFACE
@router.get(
    "/dormitories",
    response_model=List[DormitoryRead],
    summary="List dormitories",
    dependencies=[Depends(_dorm_staff)],
)
async def list_dormitories(session: AsyncSession = Depends(get_tenant_session)) -> List[DormitoryRead]:
    return [DormitoryRead.model_validate(d) for d in await DormitoryRepository(session).list_dormitories()]


# PUBLIC_INTERFACE
@router.post(
    "/dormitories",
    response_model=DormitoryRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create dormitory",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_dormitory(
    payload: DormitoryCreate, session: AsyncSession = Depends(get_tenant_session)
) -> DormitoryRead:
    return DormitoryRead.model_validate(await DormitoryService(session).create_dormitory(payload))


# PUBLIC_INTERFACE
@router.get(
    "/rooms",
    response_model=List[RoomRead],
    summary="List rooms",
    dependencies=[Depends(_dorm_staff)],
)
async def list_rooms(
    session: AsyncSession = Depends(get_tenant_session),
    dormitory_id: Optional[UUID] = Query(None),
) -> List[RoomRead]:
    return await DormitoryService(session).list_rooms(dormitory_id)


# PUBLIC_INTERFACE
@router.post(
    "/rooms",
    response_model=RoomRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create room",
    description="Create a room with an optional initial allocation; occupants may not exceed capacity.",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_room(payload: RoomCreate, session: AsyncSession = Depends(get_tenant_session)) -> RoomRead:
    return await DormitoryService(session).create_room(payload)


# PUBLIC_INTERFACE
@router.patch(
    "/rooms/{room_id}",
    response_model=RoomRead,
    summary="Update room",
    description="Update a room; occupant_ids, when present, replaces the whole allocation.",
    dependencies=[Depends(_dorm_staff)],
)
async def update_room(
    payload: RoomUpdate,
    room_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> RoomRead:
    return await DormitoryService(session).update_room(room_id, payload)


# PUBLIC_INTERFACE
@router.delete(
    "/rooms/{room_id}",
    response_model=MessageResponse,
    summary="Delete room",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def delete_room(room_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> MessageResponse:
    await DormitoryService(session).delete_room(room_id)
    return MessageResponse(message="Room deleted")


# PUBLIC_INTERFACE
@router.get(
    "/unallocated-students",
    response_model=List[UnallocatedStudent],
    summary="Students without a room",
    dependencies=[Depends(_dorm_staff)],
)
async def unallocated_students(session: AsyncSession = Depends(get_tenant_session)) -> List[UnallocatedStudent]:
    return await DormitoryService(session).unallocated_students()
