from __future__ import annotations

import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal
from src.db.models.audit import AuditLog
from src.services.base import BaseService

logger = logging.getLogger(__name__)

_STRIPPED_FIELDS = {"password_hash", "password", "id", "created_at", "updated_at"}


def _json_safe(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    if isinstance(value, dict):
        return {k: _json_safe(v) for k, v in value.items()}
    return value


# PUBLIC_INTERFACE
def safe_values(source: Any) -> Optional[Dict[str, Any]]:
    """
    Snapshot an ORM entity or dict for the audit trail.

    Password hashes, primary keys and timestamps are dropped; the rest is made JSON-safe.
    """
    if source is None:
        return None
    if isinstance(source, dict):
        raw = dict(source)
    else:
        mapper = sa_inspect(source).mapper
        raw = {attr.key: getattr(source, attr.key) for attr in mapper.column_attrs}
    return {k: _json_safe(v) for k, v in raw.items() if k not in _STRIPPED_FIELDS}


class AuditService(BaseService):
    """Appends audit log entries without ever failing the caller's operation."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)

    # PUBLIC_INTERFACE
    async def log(
        self,
        action: str,
        entity: str,
        *,
        actor: Optional[Principal] = None,
        user_id: Optional[UUID] = None,
        username: Optional[str] = None,
        entity_id: Any = None,
        details: Optional[str] = None,
        original: Any = None,
        new: Any = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> None:
        """
        Record one audit entry inside a savepoint.

        A failure rolls back only the savepoint and is logged, so the surrounding
        business transaction still commits.
        """
        if actor is not None:
            user_id = user_id or actor.tenant_user_id
            username = username or actor.email or actor.name or actor.id
        try:
            entry = AuditLog(
                user_id=user_id,
                username=username,
                action=action,
                entity=entity,
                entity_id=str(entity_id) if entity_id is not None else None,
                details=details,
                original_values=safe_values(original),
                new_values=safe_values(new),
                ip_address=ip_address,
                user_agent=user_agent,
            )
            async with self.session.begin_nested():
                self.session.add(entry)
        except Exception:
            logger.exception("Failed to write audit log %s %s", action, entity)
