from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_tenant_session, require_roles
from src.core.roles import ADMIN, PHARMACY
from src.repositories.pharmacy import PharmacyRepository
from src.schemas.common import MessageResponse
from src.schemas.pharmacy import (
    DispensationCreate,
    DispensationRead,
    HealthRecordRead,
    HealthRecordUpsert,
    MedicationCreate,
    MedicationRead,
    VisitCheckOut,
    VisitCreate,
    VisitRead,
)
from src.services.pharmacy import PharmacyService

router = APIRouter(prefix="/schools/{school_code}/portal/pharmacy", tags=["Pharmacy"])

_pharmacy_staff = require_roles(ADMIN, PHARMACY)


# PUBLIC_INTERFACE
@router.get(
    "/medications",
    response_model=List[MedicationRead],
    summary="List medications",
    dependencies=[Depends(_pharmacy_staff)],
)
async def list_medications(
    session: AsyncSession = Depends(get_tenant_session),
    low_stock: bool = Query(False, description="Only medications at or below their low-stock threshold"),
) -> List[MedicationRead]:
    rows = await PharmacyRepository(session).list_medications(low_stock_only=low_stock)
    return [MedicationRead.model_validate(m) for m in rows]


# PUBLIC_INTERFACE
@router.post(
    "/medications",
    response_model=MedicationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add medication",
    dependencies=[Depends(_pharmacy_staff)],
)
async def create_medication(
    payload: MedicationCreate, session: AsyncSession = Depends(get_tenant_session)
) -> MedicationRead:
    return MedicationRead.model_validate(await PharmacyService(session).create_medication(payload))


# PUBLIC_INTERFACE
@router.get(
    "/visits",
    response_model=List[VisitRead],
    summary="List visits",
    dependencies=[Depends(_pharmacy_staff)],
)
async def list_visits(
    session: AsyncSession = Depends(get_tenant_session),
    student_id: Optional[UUID] = Query(None),
    open_only: bool = Query(False, description="Only visits not yet checked out"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[VisitRead]:
    rows = await PharmacyRepository(session).list_visits(
        student_id=student_id, open_only=open_only, limit=limit, offset=offset
    )
    return [VisitRead.model_validate(v) for v in rows]


# PUBLIC_INTERFACE
@router.post(
    "/visits",
    response_model=VisitRead,
    status_code=status.HTTP_201_CREATED,
    summary="Check a student in",
)
async def open_visit(
    payload: VisitCreate,
    principal: Principal = Depends(_pharmacy_staff),
    session: AsyncSession = Depends(get_tenant_session),
) -> VisitRead:
    return VisitRead.model_validate(await PharmacyService(session).open_visit(payload, principal))


# PUBLIC_INTERFACE
@router.post(
    "/visits/{visit_id}/check-out",
    response_model=VisitRead,
    summary="Check a student out",
    dependencies=[Depends(_pharmacy_staff)],
)
async def check_out_visit(
    payload: VisitCheckOut,
    visit_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> VisitRead:
    return VisitRead.model_validate(await PharmacyService(session).check_out(visit_id, payload))


# PUBLIC_INTERFACE
@router.get(
    "/dispensations",
    response_model=List[DispensationRead],
    summary="List dispensations",
    dependencies=[Depends(_pharmacy_staff)],
)
async def list_dispensations(
    session: AsyncSession = Depends(get_tenant_session),
    visit_id: Optional[UUID] = Query(None),
) -> List[DispensationRead]:
    return [DispensationRead.model_validate(d) for d in await PharmacyRepository(session).list_dispensations(visit_id)]


# PUBLIC_INTERFACE
@router.post(
    "/dispensations",
    response_model=DispensationRead,
    status_code=status.HTTP_201_CREATED,
    summary="Dispense medication",
    description="Dispense during an open visit; stock is decremented in the same transaction.",
)
async def dispense(
    payload: DispensationCreate,
    principal: Principal = Depends(_pharmacy_staff),
    session: AsyncSession = Depends(get_tenant_session),
) -> DispensationRead:
    return DispensationRead.model_validate(await PharmacyService(session).dispense(payload, principal))


# PUBLIC_INTERFACE
@router.delete(
    "/dispensations/{dispensation_id}",
    response_model=MessageResponse,
    summary="Reverse a dispensation",
    description="Delete a dispensation of an open visit and return its quantity to stock.",
)
async def delete_dispensation(
    dispensation_id: UUID = Path(...),
    principal: Principal = Depends(_pharmacy_staff),
    session: AsyncSession = Depends(get_tenant_session),
) -> MessageResponse:
    await PharmacyService(session).delete_dispensation(dispensation_id, principal)
    return MessageResponse(message="Dispensation deleted and stock restored")


# PUBLIC_INTERFACE
@router.get(
    "/health-records/{student_id}",
    response_model=HealthRecordRead,
    summary="Get health record",
    dependencies=[Depends(_pharmacy_staff)],
)
async def get_health_record(
    student_id: UUID = Path(..., description="User ID of the student"),
    session: AsyncSession = Depends(get_tenant_session),
) -> HealthRecordRead:
    return HealthRecordRead.model_validate(await PharmacyService(session).get_health_record(student_id))


# PUBLIC_INTERFACE
@router.put(
    "/health-records/{student_id}",
    response_model=HealthRecordRead,
    summary="Create or replace health record",
    dependencies=[Depends(_pharmacy_staff)],
)
async def upsert_health_record(
    payload: HealthRecordUpsert,
    student_id: UUID = Path(..., description="User ID of the student"),
    session: AsyncSession = Depends(get_tenant_session),
) -> HealthRecordRead:
    return HealthRecordRead.model_validate(await PharmacyService(session).upsert_health_record(student_id, payload))
