from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal
from src.core.errors import BadRequestError, NotFoundError, PermissionDeniedError
from src.core.roles import STUDENT, TEACHER
from src.db.models.exams import Assessment, Exam, Mark
from src.repositories.academics import AcademicsRepository
from src.repositories.exams import ExamRepository
from src.repositories.users import UserRepository
from src.schemas.exams import AssessmentCreate, ExamCreate, MarksBatch, MarksBatchResult, SkippedMark
from src.services.audit import AuditService
from src.services.base import BaseService

logger = logging.getLogger(__name__)


class MarksService(BaseService):
    """Exams, assessments and teacher mark entry."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.exams = ExamRepository(session)
        self.academics = AcademicsRepository(session)
        self.users = UserRepository(session)
        self.audit = AuditService(session)

    # PUBLIC_INTERFACE
    async def create_exam(self, payload: ExamCreate) -> Exam:
        if await self.academics.get_year(payload.academic_year_id) is None:
            raise NotFoundError("Academic year not found")
        if payload.term_id is not None:
            term = await self.academics.get_term(payload.term_id)
            if term is None or term.academic_year_id != payload.academic_year_id:
                raise BadRequestError("Term does not belong to the academic year")
        exam = await self.exams.create(Exam(**payload.model_dump()))
        await self.session.commit()
        return exam

    # PUBLIC_INTERFACE
    async def create_assessment(self, exam_id: UUID, payload: AssessmentCreate) -> Assessment:
        """Create an assessment under an existing exam."""
        if await self.exams.get_exam(exam_id) is None:
            raise NotFoundError("Exam not found")
        assessment = await self.exams.create(Assessment(exam_id=exam_id, **payload.model_dump()))
        await self.session.commit()
        return assessment

    # PUBLIC_INTERFACE
    async def submit_batch(self, payload: MarksBatch, actor: Principal) -> MarksBatchResult:
        """
        Upsert the marks of one assessment.

        Steps:
          1. The assessment must exist and hang off an exam with an academic year.
          2. The teacher must teach the assessment's class and subject in that year.
          3. Entries for unknown or non-student users, or with marks outside
             0..max_marks, are skipped and reported back.
          4. Remaining entries upsert on (assessment, student); a null mark deletes
             any stored mark.
        """
        assessment = await self.exams.get_assessment(payload.assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment not found")
        exam = assessment.exam
        if exam is None or exam.academic_year_id is None:
            raise BadRequestError("Assessment is not linked to an exam with an academic year")

        teacher_user_id = actor.tenant_user_id
        if teacher_user_id is None or await self.users.get_teacher_by_user_id(teacher_user_id) is None:
            raise PermissionDeniedError("Teacher profile not found for submitting user")
        assigned = await self.users.is_teacher_assigned(
            teacher_user_id=teacher_user_id,
            class_id=assessment.class_id,
            academic_year_id=exam.academic_year_id,
            subject_id=assessment.subject_id,
        )
        if not assigned:
            raise PermissionDeniedError(
                "You are not assigned to teach this subject to this class for the relevant academic year"
            )

        max_marks = Decimal(assessment.max_marks)
        processed = 0
        skipped: List[SkippedMark] = []
        # last entry per student wins
        entries = {entry.student_id: entry for entry in payload.marks}
        for entry in entries.values():
            user = await self.users.get_user_by_id(entry.student_id)
            if user is None or user.role != STUDENT:
                skipped.append(SkippedMark(student_id=entry.student_id, reason="Unknown student"))
                continue
            existing = await self.exams.get_mark(assessment.id, entry.student_id)
            if entry.marks_obtained is None:
                if existing is not None:
                    await self.exams.delete(existing)
                    processed += 1
                continue
            value = Decimal(str(entry.marks_obtained))
            if value < 0 or value > max_marks:
                skipped.append(
                    SkippedMark(student_id=entry.student_id, reason=f"Mark out of range (0-{max_marks})")
                )
                continue
            if existing is None:
                existing = Mark(assessment_id=assessment.id, student_id=entry.student_id)
                await self.exams.add(existing)
            existing.marks_obtained = value
            existing.comments = entry.comments or ""
            existing.recorded_by_id = teacher_user_id
            existing.academic_year_id = exam.academic_year_id
            existing.term_id = exam.term_id
            processed += 1

        await self.exams.flush()
        if processed:
            await self.audit.log(
                "UPDATE",
                "Mark",
                actor=actor,
                entity_id=assessment.id,
                details=f"{processed} marks recorded for assessment {assessment.assessment_name}",
            )
        await self.session.commit()
        if skipped:
            logger.warning("Skipped %d mark entries for assessment %s", len(skipped), assessment.id)
        return MarksBatchResult(
            message=f"Marks processed. {processed} records updated/inserted.",
            processed=processed,
            skipped=skipped,
        )

    # PUBLIC_INTERFACE
    async def marks_for_assessment(self, assessment_id: UUID, actor: Optional[Principal] = None) -> List[Mark]:
        """Marks of an assessment; teachers only see assessments of classes they teach."""
        assessment = await self.exams.get_assessment(assessment_id)
        if assessment is None:
            raise NotFoundError("Assessment not found")
        if actor is not None and actor.role == TEACHER:
            assigned = await self.users.is_teacher_assigned(
                teacher_user_id=actor.tenant_user_id,
                class_id=assessment.class_id,
                academic_year_id=assessment.exam.academic_year_id,
                subject_id=assessment.subject_id,
            )
            if not assigned:
                raise PermissionDeniedError("You are not assigned to this assessment's class and subject")
        return await self.exams.list_marks_for_assessment(assessment_id)
