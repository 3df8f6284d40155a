from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import get_tenant_session, require_roles
from src.core.roles import ADMIN
from src.repositories.audit import AuditRepository
from src.schemas.audit import AuditLogRead
from src.services.finance_reports import day_bounds

router = APIRouter(prefix="/schools/{school_code}/portal", tags=["Audit"])


# PUBLIC_INTERFACE
@router.get(
    "/audit-logs",
    response_model=List[AuditLogRead],
    summary="List audit logs",
    description="Audit trail of the school, newest first.",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def list_audit_logs(
    session: AsyncSession = Depends(get_tenant_session),
    entity: Optional[str] = Query(None, description="Entity name, e.g. FeePayment"),
    action: Optional[str] = Query(None, description="CREATE, UPDATE, DELETE, LOGIN_SUCCESS, LOGIN_FAIL or VIEW"),
    user_id: Optional[UUID] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[AuditLogRead]:
    start, end = day_bounds(start_date, end_date)
    logs = await AuditRepository(session).list_logs(
        entity=entity, action=action, user_id=user_id, start=start, end=end, limit=limit, offset=offset
    )
    return [AuditLogRead.model_validate(entry) for entry in logs]
