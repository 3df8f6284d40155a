from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

import pandas as pd
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import NotFoundError
from src.repositories.academics import AcademicsRepository
from src.repositories.exams import ExamRepository
from src.repositories.users import UserRepository
from src.schemas.exams import ClassTermReport, ClassTermReportRow
from src.services.base import BaseService

logger = logging.getLogger(__name__)

STUDENT_EXPORT_COLUMNS = [
    "student_id_number",
    "first_name",
    "last_name",
    "username",
    "email",
    "gender",
    "date_of_birth",
    "admission_date",
    "academic_year",
    "class",
    "status",
]


# PUBLIC_INTERFACE
def apply_grading_scale(percentage: Optional[float], grades: Optional[Sequence[Dict[str, Any]]]) -> Tuple[str, str]:
    """
    Map a percentage onto a grading scale's bands.

    Returns:
        (grade, remarks). ("N/A", "N/A") when there is no scale or no percentage;
        ("N/A", "Out of Range") when no band contains the percentage.
    """
    if percentage is None or not grades:
        return "N/A", "N/A"
    for band in grades:
        if float(band["min_score"]) <= percentage <= float(band["max_score"]):
            return str(band["grade"]), band.get("remarks") or "N/A"
    return "N/A", "Out of Range"


class ReportService(BaseService):
    """Academic reports and data exports."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.academics = AcademicsRepository(session)
        self.exams = ExamRepository(session)
        self.users = UserRepository(session)

    # PUBLIC_INTERFACE
    async def class_term_report(self, class_id: UUID, academic_year_id: UUID) -> ClassTermReport:
        """
        Totals, percentage and grade for each active student of a class in a year.

        The year's default grading scale is used, falling back to the school-wide default.
        Students without marks score 0%. Rows are sorted by percentage, best first.
        """
        school_class = await self.academics.get_class(class_id)
        if school_class is None:
            raise NotFoundError("Class not found")
        students = await self.users.list_students(
            class_id=class_id, academic_year_id=academic_year_id, is_active=True, limit=None
        )
        scale = await self.academics.get_default_grading_scale(academic_year_id)
        totals = await self.exams.totals_by_student([s.user_id for s in students], academic_year_id)

        rows: List[ClassTermReportRow] = []
        for student in students:
            obtained, maximum = totals.get(student.user_id, (0, 0))
            obtained, maximum = float(obtained or 0), float(maximum or 0)
            percentage = round(obtained / maximum * 100.0, 2) if maximum > 0 else 0.0
            grade, remarks = apply_grading_scale(percentage, scale.grades if scale else None)
            rows.append(
                ClassTermReportRow(
                    student_id=student.user_id,
                    student_profile_id=student.id,
                    student_id_number=student.student_id_number,
                    student_name=student.user.full_name,
                    total_marks_obtained=obtained,
                    total_max_marks=maximum,
                    percentage=percentage,
                    grade=grade,
                    remarks=remarks,
                )
            )
        # best first; ties keep name order
        rows.sort(key=lambda r: r.percentage, reverse=True)
        return ClassTermReport(
            class_id=school_class.id,
            class_name=school_class.name,
            academic_year_id=academic_year_id,
            grading_scale=scale.name if scale else None,
            rows=rows,
        )

    # PUBLIC_INTERFACE
    async def students_frame(
        self,
        *,
        class_id: Optional[UUID] = None,
        academic_year_id: Optional[UUID] = None,
        is_active: Optional[bool] = None,
    ) -> pd.DataFrame:
        """Build the student export table, one row per student, ordered by name."""
        students = await self.users.list_students(
            class_id=class_id, academic_year_id=academic_year_id, is_active=is_active, limit=None
        )
        data = []
        for s in students:
            data.append(
                {
                    "student_id_number": s.student_id_number,
                    "first_name": s.user.first_name,
                    "last_name": s.user.last_name,
                    "username": s.user.username,
                    "email": s.user.email or "",
                    "gender": s.gender or "",
                    "date_of_birth": s.date_of_birth.isoformat() if s.date_of_birth else "",
                    "admission_date": s.admission_date.isoformat() if s.admission_date else "",
                    "academic_year": s.current_academic_year.name if s.current_academic_year else "",
                    "class": s.current_class.name if s.current_class else "",
                    "status": "Active" if s.is_active else "Inactive",
                }
            )
        logger.info("Prepared student export with %d rows", len(data))
        return pd.DataFrame(data, columns=STUDENT_EXPORT_COLUMNS)
