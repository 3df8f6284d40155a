from __future__ import annotations

import logging
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, ConflictError, NotFoundError
from src.db.models.dormitory import Dormitory, Room, RoomOccupant
from src.repositories.dormitory import DormitoryRepository
from src.schemas.dormitory import DormitoryCreate, RoomCreate, RoomRead, RoomUpdate, UnallocatedStudent
from src.services.base import BaseService

logger = logging.getLogger(__name__)


def room_to_read(room: Room) -> RoomRead:
    return RoomRead(
        id=room.id,
        room_number=room.room_number,
        dormitory_id=room.dormitory_id,
        capacity=room.capacity,
        notes=room.notes,
        occupant_ids=room.occupant_ids,
    )


class DormitoryService(BaseService):
    """Dormitories, rooms and bed allocation."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = DormitoryRepository(session)

    # PUBLIC_INTERFACE
    async def create_dormitory(self, payload: DormitoryCreate) -> Dormitory:
        dormitory = await self.repo.create(Dormitory(**payload.model_dump()))
        await self.session.commit()
        return dormitory

    async def _check_occupants(self, occupant_ids: Sequence[UUID], capacity: int, room_id: Optional[UUID]) -> List[UUID]:
        """De-duplicate occupants, enforce capacity and refuse users already housed in another room."""
        unique = list(dict.fromkeys(occupant_ids))
        if len(unique) > capacity:
            raise BadRequestError(f"Number of occupants ({len(unique)}) exceeds room capacity ({capacity})")
        housed = await self.repo.rooms_of_users(unique)
        elsewhere = [str(user_id) for user_id, other in housed.items() if other != room_id]
        if elsewhere:
            raise ConflictError("Some users are already allocated to another room", details={"user_ids": elsewhere})
        return unique

    # PUBLIC_INTERFACE
    async def create_room(self, payload: RoomCreate) -> RoomRead:
        """
        Create a room in a dormitory with an optional initial allocation.

        Raises:
            NotFoundError: unknown dormitory.
            ConflictError: room number already used in the dormitory, or an occupant housed elsewhere.
            BadRequestError: more occupants than capacity.
        """
        if await self.repo.get_dormitory(payload.dormitory_id) is None:
            raise NotFoundError("Dormitory not found")
        if await self.repo.find_room(payload.dormitory_id, payload.room_number):
            raise ConflictError(f"Room '{payload.room_number}' already exists in this dormitory")
        occupants = await self._check_occupants(payload.occupant_ids, payload.capacity, None)

        room = Room(
            room_number=payload.room_number,
            dormitory_id=payload.dormitory_id,
            capacity=payload.capacity,
            notes=payload.notes,
            occupancies=[RoomOccupant(user_id=user_id) for user_id in occupants],
        )
        await self.repo.add(room)
        await self.repo.flush()
        read = room_to_read(room)
        await self.session.commit()
        return read

    # PUBLIC_INTERFACE
    async def update_room(self, room_id: UUID, payload: RoomUpdate) -> RoomRead:
        """Update room details; occupant_ids, when given, replaces the allocation."""
        room = await self.repo.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        values = payload.model_dump(exclude_unset=True)
        new_number = values.get("room_number")
        if new_number and new_number != room.room_number:
            if await self.repo.find_room(room.dormitory_id, new_number):
                raise ConflictError(f"Room '{new_number}' already exists in this dormitory")
            room.room_number = new_number
        capacity = values.get("capacity") or room.capacity
        if "notes" in values:
            room.notes = values["notes"]

        if payload.occupant_ids is not None:
            occupants = await self._check_occupants(payload.occupant_ids, capacity, room.id)
            kept = [o for o in room.occupancies if o.user_id in occupants]
            kept_ids = {o.user_id for o in kept}
            room.occupancies = kept + [RoomOccupant(user_id=u) for u in occupants if u not in kept_ids]
        elif len(room.occupancies) > capacity:
            raise BadRequestError(
                f"Number of occupants ({len(room.occupancies)}) exceeds room capacity ({capacity})"
            )
        room.capacity = capacity
        await self.repo.flush()
        read = room_to_read(room)
        await self.session.commit()
        return read

    # PUBLIC_INTERFACE
    async def delete_room(self, room_id: UUID) -> None:
        room = await self.repo.get_room(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        if room.occupancies:
            raise BadRequestError("Room has occupants; reallocate them before deleting the room")
        await self.repo.delete(room)
        await self.session.commit()
        logger.info("Deleted room %s", room.room_number)

    # PUBLIC_INTERFACE
    async def list_rooms(self, dormitory_id: Optional[UUID] = None) -> List[RoomRead]:
        return [room_to_read(r) for r in await self.repo.list_rooms(dormitory_id)]

    # PUBLIC_INTERFACE
    async def unallocated_students(self) -> List[UnallocatedStudent]:
        students = await self.repo.list_unallocated_students()
        return [
            UnallocatedStudent(
                student_id=s.user_id,
                student_id_number=s.student_id_number,
                name=s.user.full_name,
                gender=s.gender,
                class_name=s.current_class.name if s.current_class else None,
            )
            for s in students
        ]
