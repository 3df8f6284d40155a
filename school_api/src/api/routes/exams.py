from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_tenant_session, require_roles
from src.core.roles import ADMIN, TEACHER
from src.repositories.exams import ExamRepository
from src.schemas.exams import (
    AssessmentCreate,
    AssessmentRead,
    ExamCreate,
    ExamRead,
    MarkRead,
    MarksBatch,
    MarksBatchResult,
)
from src.services.marks import MarksService

router = APIRouter(prefix="/schools/{school_code}/portal", tags=["Exams"])


# PUBLIC_INTERFACE
@router.get(
    "/exams",
    response_model=List[ExamRead],
    summary="List exams",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_exams(
    session: AsyncSession = Depends(get_tenant_session),
    academic_year_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
) -> List[ExamRead]:
    exams = await ExamRepository(session).list_exams(
        academic_year_id=academic_year_id, term_id=term_id, status=status_filter
    )
    return [ExamRead.model_validate(e) for e in exams]


# PUBLIC_INTERFACE
@router.post(
    "/exams",
    response_model=ExamRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create exam",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_exam(payload: ExamCreate, session: AsyncSession = Depends(get_tenant_session)) -> ExamRead:
    return ExamRead.model_validate(await MarksService(session).create_exam(payload))


# PUBLIC_INTERFACE
@router.get(
    "/assessments",
    response_model=List[AssessmentRead],
    summary="List assessments",
    dependencies=[Depends(require_roles(ADMIN, TEACHER))],
)
async def list_assessments(
    session: AsyncSession = Depends(get_tenant_session),
    exam_id: Optional[UUID] = Query(None),
    class_id: Optional[UUID] = Query(None),
    subject_id: Optional[UUID] = Query(None),
) -> List[AssessmentRead]:
    rows = await ExamRepository(session).list_assessments(exam_id=exam_id, class_id=class_id, subject_id=subject_id)
    return [AssessmentRead.model_validate(a) for a in rows]


# PUBLIC_INTERFACE
@router.post(
    "/exams/{exam_id}/assessments",
    response_model=AssessmentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create assessment",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def create_assessment(
    payload: AssessmentCreate,
    exam_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> AssessmentRead:
    return AssessmentRead.model_validate(await MarksService(session).create_assessment(exam_id, payload))


# PUBLIC_INTERFACE
@router.post(
    "/marks/batch",
    response_model=MarksBatchResult,
    summary="Submit marks",
    description=(
        "Teachers upsert the marks of one assessment they teach. Unknown students and out-of-range "
        "marks are skipped and reported; a null mark clears the stored one."
    ),
)
async def submit_marks(
    payload: MarksBatch,
    principal: Principal = Depends(require_roles(TEACHER, allow_superadmin=False)),
    session: AsyncSession = Depends(get_tenant_session),
) -> MarksBatchResult:
    return await MarksService(session).submit_batch(payload, principal)


# PUBLIC_INTERFACE
@router.get(
    "/assessments/{assessment_id}/marks",
    response_model=List[MarkRead],
    summary="Marks of an assessment",
)
async def marks_for_assessment(
    assessment_id: UUID = Path(...),
    principal: Principal = Depends(require_roles(ADMIN, TEACHER)),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[MarkRead]:
    marks = await MarksService(session).marks_for_assessment(assessment_id, principal)
    return [MarkRead.model_validate(m) for m in marks]
