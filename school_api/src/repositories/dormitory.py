from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.academics import Student
from src.db.models.dormitory import Dormitory, Room, RoomOccupant
from src.db.models.users import User
from .base import BaseRepository


class DormitoryRepository(BaseRepository):
    """Repository for dormitories, rooms and room allocations."""

    async def get_dormitory(self, dormitory_id: UUID) -> Optional[Dormitory]:
        return await self.get(Dormitory, dormitory_id)

    async def list_dormitories(self) -> List[Dormitory]:
        stmt = select(Dormitory).order_by(Dormitory.name)
        return list(await self.scalars(stmt))

    async def get_room(self, room_id: UUID) -> Optional[Room]:
        return await self.get(Room, room_id)

    async def find_room(self, dormitory_id: UUID, room_number: str) -> Optional[Room]:
        stmt = select(Room).where(Room.dormitory_id == dormitory_id, Room.room_number == room_number)
        return await self.scalar_one_or_none(stmt)

    async def list_rooms(self, dormitory_id: Optional[UUID] = None) -> List[Room]:
        stmt = select(Room)
        if dormitory_id:
            stmt = stmt.where(Room.dormitory_id == dormitory_id)
        stmt = stmt.order_by(Room.room_number)
        return list(await self.scalars(stmt))

    async def rooms_of_users(self, user_ids: List[UUID]) -> dict:
        """Map each given user id to the room id it currently occupies."""
        if not user_ids:
            return {}
        stmt = select(RoomOccupant.user_id, RoomOccupant.room_id).where(RoomOccupant.user_id.in_(user_ids))
        result = await self.execute(stmt)
        return {row[0]: row[1] for row in result.all()}

    async def list_unallocated_students(self) -> List[Student]:
        """Active students whose user holds no room allocation."""
        allocated = select(RoomOccupant.user_id)
        stmt = (
            select(Student)
            .join(User, Student.user_id == User.id)
            .where(Student.is_active.is_(True), Student.user_id.not_in(allocated))
            .order_by(User.last_name, User.first_name)
        )
        return list(await self.scalars(stmt))

    async def create(self, entity: Any) -> Any:
        await self.add(entity)
        await self.flush()
        await self.refresh(entity)
        return entity
