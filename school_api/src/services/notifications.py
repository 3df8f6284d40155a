from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import NotFoundError
from src.db.models.notifications import Notification
from src.repositories.academics import AcademicsRepository
from src.repositories.notifications import NotificationRepository
from src.schemas.notifications import BroadcastResult, ClassBroadcast
from src.services.base import BaseService

logger = logging.getLogger(__name__)


class NotificationService(BaseService):
    """In-app notifications for school users."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = NotificationRepository(session)
        self.academics = AcademicsRepository(session)

    # PUBLIC_INTERFACE
    async def list_for_user(self, user_id: Optional[UUID], *, unread_only: bool = False) -> List[Notification]:
        """Newest 50 notifications of a user; platform operators have none."""
        if user_id is None:
            return []
        return await self.repo.list_for_user(user_id, unread_only=unread_only)

    # PUBLIC_INTERFACE
    async def mark_read(self, notification_id: UUID, user_id: Optional[UUID]) -> Notification:
        notification = await self.repo.get_for_user(notification_id, user_id) if user_id else None
        if notification is None:
            raise NotFoundError("Notification not found")
        notification.is_read = True
        await self.repo.flush()
        await self.session.commit()
        return notification

    # PUBLIC_INTERFACE
    async def broadcast(self, payload: ClassBroadcast) -> BroadcastResult:
        """
        Notify active students of the active academic year, optionally only one class level.

        Without an active academic year nothing is sent; this is logged, not raised.
        """
        year = await self.academics.get_active_year()
        if year is None:
            logger.warning("Broadcast '%s' skipped: no active academic year", payload.title)
            return BroadcastResult(message="No active academic year; no notifications sent.", notified=0)

        recipients = await self.repo.student_recipients(year.id, payload.level)
        await self.repo.add_all(
            Notification(
                user_id=user_id,
                title=payload.title,
                message=payload.message,
                type=payload.type,
                link=payload.link,
            )
            for user_id in recipients
        )
        await self.repo.flush()
        await self.session.commit()
        logger.info("Broadcast '%s' sent to %d students (level=%s)", payload.title, len(recipients), payload.level)
        return BroadcastResult(message=f"Notification sent to {len(recipients)} students.", notified=len(recipients))
