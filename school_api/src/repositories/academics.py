from __future__ import annotations

from datetime import date
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select, update

from src.db.models.academics import (
    AcademicYear,
    Attendance,
    GradingScale,
    SchoolClass,
    Subject,
    Term,
    Timetable,
    TimetablePeriod,
)
from .base import BaseRepository


class AcademicsRepository(BaseRepository):
    """Repository for academic years, terms, classes, subjects, grading scales and timetables."""

    # Academic years
    async def get_year(self, year_id: UUID) -> Optional[AcademicYear]:
        return await self.get(AcademicYear, year_id)

    async def get_year_by_name(self, name: str) -> Optional[AcademicYear]:
        stmt = select(AcademicYear).where(AcademicYear.name == name)
        return await self.scalar_one_or_none(stmt)

    async def get_active_year(self) -> Optional[AcademicYear]:
        stmt = select(AcademicYear).where(AcademicYear.is_active.is_(True))
        return await self.scalar_one_or_none(stmt)

    async def list_years(self, *, active: Optional[bool] = None) -> List[AcademicYear]:
        stmt = select(AcademicYear)
        if active is not None:
            stmt = stmt.where(AcademicYear.is_active == active)
        stmt = stmt.order_by(AcademicYear.start_date.desc())
        return list(await self.scalars(stmt))

    async def deactivate_other_years(self, keep_id: Optional[UUID] = None) -> None:
        stmt = update(AcademicYear).where(AcademicYear.is_active.is_(True))
        if keep_id is not None:
            stmt = stmt.where(AcademicYear.id != keep_id)
        await self.execute(stmt.values(is_active=False).execution_options(synchronize_session="fetch"))

    # Terms
    async def get_term(self, term_id: UUID) -> Optional[Term]:
        return await self.get(Term, term_id)

    async def list_terms(self, academic_year_id: Optional[UUID] = None) -> List[Term]:
        stmt = select(Term)
        if academic_year_id:
            stmt = stmt.where(Term.academic_year_id == academic_year_id)
        stmt = stmt.order_by(Term.start_date)
        return list(await self.scalars(stmt))

    async def deactivate_other_terms(self, academic_year_id: UUID, keep_id: Optional[UUID] = None) -> None:
        stmt = update(Term).where(Term.academic_year_id == academic_year_id, Term.is_active.is_(True))
        if keep_id is not None:
            stmt = stmt.where(Term.id != keep_id)
        await self.execute(stmt.values(is_active=False).execution_options(synchronize_session="fetch"))

    # Classes
    async def get_class(self, class_id: UUID) -> Optional[SchoolClass]:
        return await self.get(SchoolClass, class_id)

    async def list_classes(
        self, *, academic_year_id: Optional[UUID] = None, level: Optional[str] = None
    ) -> List[SchoolClass]:
        stmt = select(SchoolClass)
        if academic_year_id:
            stmt = stmt.where(SchoolClass.academic_year_id == academic_year_id)
        if level:
            stmt = stmt.where(SchoolClass.level == level)
        stmt = stmt.order_by(SchoolClass.level, SchoolClass.name)
        return list(await self.scalars(stmt))

    # Subjects
    async def get_subject(self, subject_id: UUID) -> Optional[Subject]:
        return await self.get(Subject, subject_id)

    async def list_subjects(self) -> List[Subject]:
        stmt = select(Subject).order_by(Subject.name)
        return list(await self.scalars(stmt))

    # Grading scales
    async def get_default_grading_scale(self, academic_year_id: Optional[UUID]) -> Optional[GradingScale]:
        """Default scale of the year, falling back to the school-wide default (no year)."""
        if academic_year_id is not None:
            stmt = select(GradingScale).where(
                GradingScale.is_default.is_(True), GradingScale.academic_year_id == academic_year_id
            ).limit(1)
            scale = await self.scalar_one_or_none(stmt)
            if scale is not None:
                return scale
        stmt = select(GradingScale).where(
            GradingScale.is_default.is_(True), GradingScale.academic_year_id.is_(None)
        ).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def list_grading_scales(self) -> List[GradingScale]:
        stmt = select(GradingScale).order_by(GradingScale.name)
        return list(await self.scalars(stmt))

    # Timetables
    async def list_timetables(
        self, *, class_id: Optional[UUID] = None, academic_year_id: Optional[UUID] = None
    ) -> List[Timetable]:
        stmt = select(Timetable)
        if class_id:
            stmt = stmt.where(Timetable.class_id == class_id)
        if academic_year_id:
            stmt = stmt.where(Timetable.academic_year_id == academic_year_id)
        stmt = stmt.order_by(Timetable.name)
        return list(await self.scalars(stmt))

    async def find_timetable(
        self, *, name: str, class_id: UUID, academic_year_id: UUID, term_id: Optional[UUID]
    ) -> Optional[Timetable]:
        stmt = select(Timetable).where(
            Timetable.name == name,
            Timetable.class_id == class_id,
            Timetable.academic_year_id == academic_year_id,
            Timetable.term_id.is_(None) if term_id is None else Timetable.term_id == term_id,
        )
        return await self.scalar_one_or_none(stmt)

    async def deactivate_timetables(
        self, *, class_id: UUID, academic_year_id: UUID, term_id: Optional[UUID]
    ) -> None:
        stmt = update(Timetable).where(
            Timetable.class_id == class_id,
            Timetable.academic_year_id == academic_year_id,
            Timetable.term_id.is_(None) if term_id is None else Timetable.term_id == term_id,
            Timetable.is_active.is_(True),
        )
        await self.execute(stmt.values(is_active=False).execution_options(synchronize_session="fetch"))

    async def list_active_periods(
        self, *, academic_year_id: UUID, teacher_ids: List[UUID], exclude_timetable_id: Optional[UUID] = None
    ) -> List[TimetablePeriod]:
        """Periods of the given teachers in every active timetable of the year."""
        if not teacher_ids:
            return []
        stmt = (
            select(TimetablePeriod)
            .join(Timetable, Timetable.id == TimetablePeriod.timetable_id)
            .where(
                Timetable.academic_year_id == academic_year_id,
                Timetable.is_active.is_(True),
                TimetablePeriod.teacher_id.in_(teacher_ids),
            )
        )
        if exclude_timetable_id is not None:
            stmt = stmt.where(Timetable.id != exclude_timetable_id)
        return list(await self.scalars(stmt))

    # Attendance
    async def find_attendance(
        self,
        *,
        student_id: UUID,
        class_id: UUID,
        academic_year_id: UUID,
        attendance_date: date,
        subject_id: Optional[UUID],
    ) -> Optional[Attendance]:
        stmt = select(Attendance).where(
            Attendance.student_id == student_id,
            Attendance.class_id == class_id,
            Attendance.academic_year_id == academic_year_id,
            Attendance.attendance_date == attendance_date,
            Attendance.subject_id.is_(None) if subject_id is None else Attendance.subject_id == subject_id,
        )
        return await self.scalar_one_or_none(stmt)

    async def list_attendance(
        self,
        *,
        class_id: UUID,
        academic_year_id: UUID,
        attendance_date: date,
        subject_id: Optional[UUID] = None,
    ) -> List[Attendance]:
        stmt = select(Attendance).where(
            Attendance.class_id == class_id,
            Attendance.academic_year_id == academic_year_id,
            Attendance.attendance_date == attendance_date,
        )
        if subject_id is not None:
            stmt = stmt.where(Attendance.subject_id == subject_id)
        return list(await self.scalars(stmt))

    async def create(self, entity: Any) -> Any:
        """Persist any academics entity and load its server-generated columns."""
        await self.add(entity)
        await self.flush()
        await self.refresh(entity)
        return entity
