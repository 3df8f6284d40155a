from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import func, select, update

from src.db.models.central import School, SuperAdminUser
from .base import BaseRepository


class SchoolRepository(BaseRepository):
    """Repository for school (tenant) records in the central database."""

    async def get_by_code(self, school_code: str) -> Optional[School]:
        stmt = select(School).where(School.school_code == school_code.strip().lower())
        return await self.scalar_one_or_none(stmt)

    async def get_by_id(self, school_id: UUID) -> Optional[School]:
        return await self.get(School, school_id)

    async def list_schools(
        self, *, is_active: Optional[bool] = None, limit: int = 100, offset: int = 0
    ) -> List[School]:
        stmt = select(School)
        if is_active is not None:
            stmt = stmt.where(School.is_active == is_active)
        stmt = stmt.order_by(School.name).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def create_school(self, **values: Any) -> School:
        school = School(**values)
        await self.add(school)
        await self.flush()
        await self.refresh(school)
        return school

    async def update_school(self, school_id: UUID, values: Dict[str, Any]) -> Optional[School]:
        if values:
            stmt = (
                update(School)
                .where(School.id == school_id)
                .values(**values, updated_at=func.now())
                .execution_options(synchronize_session="fetch")
            )
            await self.execute(stmt)
        school = await self.get_by_id(school_id)
        if school is not None:
            await self.refresh(school)
        return school


class SuperAdminRepository(BaseRepository):
    """Repository for platform operator accounts."""

    async def get_by_email(self, email: str) -> Optional[SuperAdminUser]:
        stmt = select(SuperAdminUser).where(func.lower(SuperAdminUser.email) == email.strip().lower())
        return await self.scalar_one_or_none(stmt)

    async def get_by_id(self, user_id: UUID) -> Optional[SuperAdminUser]:
        return await self.get(SuperAdminUser, user_id)

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[SuperAdminUser]:
        stmt = select(SuperAdminUser).order_by(SuperAdminUser.email).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def create_user(self, *, email: str, name: str, password_hash: str, is_active: bool = True) -> SuperAdminUser:
        user = SuperAdminUser(
            email=email.strip().lower(),
            name=name,
            password_hash=password_hash,
            is_active=is_active,
        )
        await self.add(user)
        await self.flush()
        await self.refresh(user)
        return user
