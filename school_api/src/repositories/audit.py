from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.audit import AuditLog
from .base import BaseRepository


class AuditRepository(BaseRepository):
    """Repository for audit log entries."""

    async def list_logs(
        self,
        *,
        entity: Optional[str] = None,
        action: Optional[str] = None,
        user_id: Optional[UUID] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[AuditLog]:
        stmt = select(AuditLog)
        if entity:
            stmt = stmt.where(AuditLog.entity == entity)
        if action:
            stmt = stmt.where(AuditLog.action == action)
        if user_id:
            stmt = stmt.where(AuditLog.user_id == user_id)
        if start is not None:
            stmt = stmt.where(AuditLog.timestamp >= start)
        if end is not None:
            stmt = stmt.where(AuditLog.timestamp <= end)
        stmt = stmt.order_by(AuditLog.timestamp.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))
