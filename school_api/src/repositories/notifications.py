from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.academics import SchoolClass, Student
from src.db.models.notifications import Notification
from .base import BaseRepository


class NotificationRepository(BaseRepository):
    """Repository for per-user notifications."""

    async def list_for_user(self, user_id: UUID, *, unread_only: bool = False, limit: int = 50) -> List[Notification]:
        stmt = select(Notification).where(Notification.user_id == user_id)
        if unread_only:
            stmt = stmt.where(Notification.is_read.is_(False))
        stmt = stmt.order_by(Notification.created_at.desc()).limit(limit)
        return list(await self.scalars(stmt))

    async def get_for_user(self, notification_id: UUID, user_id: UUID) -> Optional[Notification]:
        stmt = select(Notification).where(Notification.id == notification_id, Notification.user_id == user_id)
        return await self.scalar_one_or_none(stmt)

    async def student_recipients(self, academic_year_id: UUID, level: Optional[str] = None) -> List[UUID]:
        """User ids of active students in the year, narrowed to a class level when given."""
        stmt = select(Student.user_id).where(
            Student.is_active.is_(True), Student.current_academic_year_id == academic_year_id
        )
        if level:
            stmt = stmt.join(SchoolClass, SchoolClass.id == Student.current_class_id).where(SchoolClass.level == level)
        return list(await self.scalars(stmt))
