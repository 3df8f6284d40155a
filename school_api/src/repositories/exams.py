from __future__ import annotations

from typing import Any, List, Optional, Sequence
from uuid import UUID

from sqlalchemy import func, select

from src.db.models.exams import Assessment, Exam, Mark
from .base import BaseRepository


class ExamRepository(BaseRepository):
    """Repository for exams, assessments and marks."""

    # Exams
    async def get_exam(self, exam_id: UUID) -> Optional[Exam]:
        return await self.get(Exam, exam_id)

    async def list_exams(
        self,
        *,
        academic_year_id: Optional[UUID] = None,
        term_id: Optional[UUID] = None,
        status: Optional[str] = None,
    ) -> List[Exam]:
        stmt = select(Exam)
        if academic_year_id:
            stmt = stmt.where(Exam.academic_year_id == academic_year_id)
        if term_id:
            stmt = stmt.where(Exam.term_id == term_id)
        if status:
            stmt = stmt.where(Exam.status == status)
        stmt = stmt.order_by(Exam.start_date.desc().nulls_last(), Exam.name)
        return list(await self.scalars(stmt))

    # Assessments
    async def get_assessment(self, assessment_id: UUID) -> Optional[Assessment]:
        return await self.get(Assessment, assessment_id)

    async def list_assessments(
        self,
        *,
        exam_id: Optional[UUID] = None,
        class_id: Optional[UUID] = None,
        subject_id: Optional[UUID] = None,
    ) -> List[Assessment]:
        stmt = select(Assessment)
        if exam_id:
            stmt = stmt.where(Assessment.exam_id == exam_id)
        if class_id:
            stmt = stmt.where(Assessment.class_id == class_id)
        if subject_id:
            stmt = stmt.where(Assessment.subject_id == subject_id)
        stmt = stmt.order_by(Assessment.assessment_date.nulls_last(), Assessment.assessment_name)
        return list(await self.scalars(stmt))

    # Marks
    async def get_mark(self, assessment_id: UUID, student_id: UUID) -> Optional[Mark]:
        stmt = select(Mark).where(Mark.assessment_id == assessment_id, Mark.student_id == student_id)
        return await self.scalar_one_or_none(stmt)

    async def list_marks_for_assessment(self, assessment_id: UUID) -> List[Mark]:
        stmt = select(Mark).where(Mark.assessment_id == assessment_id)
        return list(await self.scalars(stmt))

    async def totals_by_student(self, student_ids: Sequence[UUID], academic_year_id: UUID) -> dict:
        """
        Sum marks obtained and the matching assessments' max marks per student for a year.

        Returns:
            {student_user_id: (total_obtained, total_max)}
        """
        if not student_ids:
            return {}
        stmt = (
            select(
                Mark.student_id,
                func.coalesce(func.sum(Mark.marks_obtained), 0),
                func.coalesce(func.sum(Assessment.max_marks), 0),
            )
            .join(Assessment, Assessment.id == Mark.assessment_id)
            .where(Mark.student_id.in_(list(student_ids)), Mark.academic_year_id == academic_year_id)
            .group_by(Mark.student_id)
        )
        result = await self.execute(stmt)
        return {row[0]: (row[1], row[2]) for row in result.all()}

    async def create(self, entity: Any) -> Any:
        await self.add(entity)
        await self.flush()
        await self.refresh(entity)
        return entity
