from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_tenant_session, require_roles
from src.core.roles import ADMIN, TENANT_ROLES
from src.schemas.notifications import BroadcastResult, ClassBroadcast, NotificationRead
from src.services.notifications import NotificationService

router = APIRouter(prefix="/schools/{school_code}/portal/notifications", tags=["Notifications"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[NotificationRead],
    summary="My notifications",
    description="The caller's 50 newest notifications; status=unread keeps only unread ones.",
)
async def list_notifications(
    status_filter: Optional[str] = Query(None, alias="status", pattern="^(all|unread)$"),
    principal: Principal = Depends(require_roles(*TENANT_ROLES)),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[NotificationRead]:
    rows = await NotificationService(session).list_for_user(
        principal.tenant_user_id, unread_only=status_filter == "unread"
    )
    return [NotificationRead.model_validate(n) for n in rows]


# PUBLIC_INTERFACE
@router.post(
    "/{notification_id}/read",
    response_model=NotificationRead,
    summary="Mark notification read",
)
async def mark_notification_read(
    notification_id: UUID = Path(...),
    principal: Principal = Depends(require_roles(*TENANT_ROLES)),
    session: AsyncSession = Depends(get_tenant_session),
) -> NotificationRead:
    notification = await NotificationService(session).mark_read(notification_id, principal.tenant_user_id)
    return NotificationRead.model_validate(notification)


# PUBLIC_INTERFACE
@router.post(
    "/broadcast",
    response_model=BroadcastResult,
    summary="Broadcast to students",
    description="Notify every active student of the active academic year, optionally limited to one class level.",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def broadcast(payload: ClassBroadcast, session: AsyncSession = Depends(get_tenant_session)) -> BroadcastResult:
    return await NotificationService(session).broadcast(payload)
