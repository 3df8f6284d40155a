from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_tenant_session, require_roles
from src.core.roles import ADMIN, TEACHER
from src.repositories.academics import AcademicsRepository
from src.schemas.academics import (
    AcademicYearCreate,
    AcademicYearRead,
    AcademicYearUpdate,
    AttendanceRead,
    AttendanceSubmit,
    ClassCreate,
    ClassRead,
    GradingScaleCreate,
    GradingScaleRead,
    PeriodIn,
    SubjectCreate,
    SubjectRead,
    TermCreate,
    TermRead,
    TimetableCreate,
    TimetableRead,
)
from src.schemas.common import MessageResponse
from src.services.academics import AcademicsService

router = APIRouter(prefix="/schools/{school_code}/portal/academics", tags=["Academics"])


# PUBLIC_INTERFACE
@router.get(
    "/academic-years",
    response_model=List[AcademicYearRead],
    summary="List academic years",
    description="Academic years, newest start date first.",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_academic_years(
    session: AsyncSession = Depends(get_tenant_session),
    active: Optional[bool] = Query(None, description="Filter by active flag"),
) -> List[AcademicYearRead]:
    years = await AcademicsService(session).list_years(active=active)
    return [AcademicYearRead.model_validate(y) for y in years]


# PUBLIC_INTERFACE
@router.post(
    "/academic-years",
    response_model=AcademicYearRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create academic year",
    description="Creating an active year deactivates every other year in the same transaction.",
)
async def create_academic_year(
    payload: AcademicYearCreate,
    principal: Principal = Depends(require_roles(ADMIN)),
    session: AsyncSession = Depends(get_tenant_session),
) -> AcademicYearRead:
    year = await AcademicsService(session).create_year(payload, actor=principal)
    return AcademicYearRead.model_validate(year)


# PUBLIC_INTERFACE
@router.patch(
    "/academic-years/{year_id}",
    response_model=AcademicYearRead,
    summary="Update academic year",
)
async def update_academic_year(
    payload: AcademicYearUpdate,
    year_id: UUID = Path(...),
    principal: Principal = Depends(require_roles(ADMIN)),
    session: AsyncSession = Depends(get_tenant_session),
) -> AcademicYearRead:
    year = await AcademicsService(session).update_year(year_id, payload, actor=principal)
    return AcademicYearRead.model_validate(year)


# PUBLIC_INTERFACE
@router.delete(
    "/academic-years/{year_id}",
    response_model=MessageResponse,
    summary="Delete academic year",
    description="Fails with 409 while terms, classes or other records still reference the year.",
)
async def delete_academic_year(
    year_id: UUID = Path(...),
    principal: Principal = Depends(require_roles(ADMIN)),
    session: AsyncSession = Depends(get_tenant_session),
) -> MessageResponse:
    await AcademicsService(session).delete_year(year_id, actor=principal)
    return MessageResponse(message="Academic year deleted")


# PUBLIC_INTERFACE
@router.get(
    "/terms",
    response_model=List[TermRead],
    summary="List terms",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_terms(
    session: AsyncSession = Depends(get_tenant_session),
    academic_year_id: Optional[UUID] = Query(None),
) -> List[TermRead]:
    terms = await AcademicsService(session).list_terms(academic_year_id)
    return [TermRead.model_validate(t) for t in terms]


# PUBLIC_INTERFACE
@router.post(
    "/terms",
    response_model=TermRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create term",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_term(payload: TermCreate, session: AsyncSession = Depends(get_tenant_session)) -> TermRead:
    return TermRead.model_validate(await AcademicsService(session).create_term(payload))


# PUBLIC_INTERFACE
@router.get(
    "/classes",
    response_model=List[ClassRead],
    summary="List classes",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_classes(
    session: AsyncSession = Depends(get_tenant_session),
    academic_year_id: Optional[UUID] = Query(None),
    level: Optional[str] = Query(None),
) -> List[ClassRead]:
    classes = await AcademicsRepository(session).list_classes(academic_year_id=academic_year_id, level=level)
    return [ClassRead.model_validate(c) for c in classes]


# PUBLIC_INTERFACE
@router.post(
    "/classes",
    response_model=ClassRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create class",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_class(payload: ClassCreate, session: AsyncSession = Depends(get_tenant_session)) -> ClassRead:
    return ClassRead.model_validate(await AcademicsService(session).create_class(payload))


# PUBLIC_INTERFACE
@router.get(
    "/subjects",
    response_model=List[SubjectRead],
    summary="List subjects",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_subjects(session: AsyncSession = Depends(get_tenant_session)) -> List[SubjectRead]:
    return [SubjectRead.model_validate(s) for s in await AcademicsRepository(session).list_subjects()]


# PUBLIC_INTERFACE
@router.post(
    "/subjects",
    response_model=SubjectRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create subject",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_subject(payload: SubjectCreate, session: AsyncSession = Depends(get_tenant_session)) -> SubjectRead:
    return SubjectRead.model_validate(await AcademicsService(session).create_subject(payload))


# PUBLIC_INTERFACE
@router.get(
    "/grading-scales",
    response_model=List[GradingScaleRead],
    summary="List grading scales",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_grading_scales(session: AsyncSession = Depends(get_tenant_session)) -> List[GradingScaleRead]:
    return [GradingScaleRead.model_validate(g) for g in await AcademicsRepository(session).list_grading_scales()]


# PUBLIC_INTERFACE
@router.post(
    "/grading-scales",
    response_model=GradingScaleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create grading scale",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_grading_scale(
    payload: GradingScaleCreate, session: AsyncSession = Depends(get_tenant_session)
) -> GradingScaleRead:
    return GradingScaleRead.model_validate(await AcademicsService(session).create_grading_scale(payload))


# PUBLIC_INTERFACE
@router.get(
    "/timetables",
    response_model=List[TimetableRead],
    summary="List timetables",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_timetables(
    session: AsyncSession = Depends(get_tenant_session),
    class_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
) -> List[TimetableRead]:
    rows = await AcademicsService(session).list_timetables(class_id=class_id, academic_year_id=academic_year_id)
    return [TimetableRead.model_validate(t) for t in rows]


# PUBLIC_INTERFACE
@router.post(
    "/timetables",
    response_model=TimetableRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create timetable",
    description=(
        "Create a class timetable. Periods of one day may not overlap, and an active timetable "
        "may not double-book a teacher against other active timetables of the year."
    ),
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_timetable(
    payload: TimetableCreate, session: AsyncSession = Depends(get_tenant_session)
) -> TimetableRead:
    return TimetableRead.model_validate(await AcademicsService(session).create_timetable(payload))


# PUBLIC_INTERFACE
@router.put(
    "/timetables/{timetable_id}/periods",
    response_model=TimetableRead,
    summary="Replace timetable periods",
    description="Replace every period of a timetable and bump its version.",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def replace_timetable_periods(
    periods: List[PeriodIn],
    timetable_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> TimetableRead:
    return TimetableRead.model_validate(await AcademicsService(session).replace_periods(timetable_id, periods))


# PUBLIC_INTERFACE
@router.post(
    "/attendance",
    response_model=List[AttendanceRead],
    summary="Submit attendance",
    description="Teachers record attendance for a class they teach; one row per student per day is upserted.",
)
async def submit_attendance(
    payload: AttendanceSubmit,
    principal: Principal = Depends(require_roles(TEACHER, allow_superadmin=False)),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[AttendanceRead]:
    rows = await AcademicsService(session).submit_attendance(payload, principal)
    return [AttendanceRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.get(
    "/attendance",
    response_model=List[AttendanceRead],
    summary="Read attendance",
)
async def get_attendance(
    class_id: UUID = Query(...),
    academic_year_id: UUID = Query(...),
    attendance_date: date = Query(..., description="Day to read"),
    subject_id: Optional[UUID] = Query(None),
    principal: Principal = Depends(require_roles(ADMIN, TEACHER)),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[AttendanceRead]:
    rows = await AcademicsService(session).get_attendance(
        principal,
        class_id=class_id,
        academic_year_id=academic_year_id,
        attendance_date=attendance_date,
        subject_id=subject_id,
    )
    return [AttendanceRead.model_validate(r) for r in rows]
