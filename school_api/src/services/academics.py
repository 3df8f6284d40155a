from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal
from src.core.roles import TEACHER
from src.core.errors import BadRequestError, ConflictError, NotFoundError, PermissionDeniedError
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
from src.repositories.academics import AcademicsRepository
from src.repositories.users import UserRepository
from src.schemas.academics import (
    AcademicYearCreate,
    AcademicYearUpdate,
    AttendanceSubmit,
    ClassCreate,
    GradingScaleCreate,
    PeriodIn,
    SubjectCreate,
    TermCreate,
    TimetableCreate,
)
from src.services.audit import AuditService, safe_values
from src.services.base import BaseService

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
def find_period_overlaps(periods: Sequence[PeriodIn]) -> List[str]:
    """
    Return a message for every pair of periods that overlap on the same day.

    Periods touching end-to-start (08:00-09:00 and 09:00-10:00) do not overlap.
    """
    by_day: Dict[str, List[PeriodIn]] = defaultdict(list)
    for p in periods:
        by_day[p.day_of_week].append(p)
    problems: List[str] = []
    for day, day_periods in by_day.items():
        ordered = sorted(day_periods, key=lambda p: (p.start_time, p.end_time))
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.start_time < prev.end_time:
                problems.append(
                    f"{day}: {prev.start_time:%H:%M}-{prev.end_time:%H:%M} overlaps "
                    f"{cur.start_time:%H:%M}-{cur.end_time:%H:%M}"
                )
    return problems


def _clashes(a_start, a_end, b_start, b_end) -> bool:
    return a_start < b_end and b_start < a_end


class AcademicsService(BaseService):
    """
    Academic calendar, classes, timetables and attendance.

    Every write commits once at the end so multi-row changes such as switching
    the active year land together or not at all.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = AcademicsRepository(session)
        self.users = UserRepository(session)
        self.audit = AuditService(session)

    # Academic years
    # PUBLIC_INTERFACE
    async def list_years(self, active: Optional[bool] = None) -> List[AcademicYear]:
        """Academic years, newest start date first."""
        return await self.repo.list_years(active=active)

    # PUBLIC_INTERFACE
    async def create_year(self, payload: AcademicYearCreate, actor: Optional[Principal] = None) -> AcademicYear:
        """Create a year; when it is active every other year is deactivated in the same transaction."""
        if await self.repo.get_year_by_name(payload.name):
            raise ConflictError(f"Academic year '{payload.name}' already exists")
        if payload.is_active:
            await self.repo.deactivate_other_years()
        year = await self.repo.create(AcademicYear(**payload.model_dump()))
        await self.audit.log("CREATE", "AcademicYear", actor=actor, entity_id=year.id, new=year)
        await self.session.commit()
        logger.info("Created academic year %s (active=%s)", year.name, year.is_active)
        return year

    # PUBLIC_INTERFACE
    async def update_year(
        self, year_id: UUID, payload: AcademicYearUpdate, actor: Optional[Principal] = None
    ) -> AcademicYear:
        """Update a year; activating it deactivates all others."""
        year = await self.repo.get_year(year_id)
        if year is None:
            raise NotFoundError("Academic year not found")
        original = safe_values(year)
        values = payload.model_dump(exclude_unset=True)
        if values.get("name") and values["name"] != year.name:
            other = await self.repo.get_year_by_name(values["name"])
            if other is not None and other.id != year.id:
                raise ConflictError(f"Academic year '{values['name']}' already exists")
        if values.get("is_active"):
            await self.repo.deactivate_other_years(keep_id=year.id)
        for key, value in values.items():
            setattr(year, key, value)
        if year.start_date > year.end_date:
            raise BadRequestError("start_date must not be after end_date")
        await self.repo.flush()
        await self.audit.log("UPDATE", "AcademicYear", actor=actor, entity_id=year.id, original=original, new=year)
        await self.session.commit()
        return year

    # PUBLIC_INTERFACE
    async def delete_year(self, year_id: UUID, actor: Optional[Principal] = None) -> None:
        """Delete a year; years still referenced by terms or classes fail with 409 through the constraint."""
        year = await self.repo.get_year(year_id)
        if year is None:
            raise NotFoundError("Academic year not found")
        original = safe_values(year)
        await self.repo.delete(year)
        await self.repo.flush()
        await self.audit.log("DELETE", "AcademicYear", actor=actor, entity_id=year_id, original=original)
        await self.session.commit()

    # Terms
    # PUBLIC_INTERFACE
    async def list_terms(self, academic_year_id: Optional[UUID] = None) -> List[Term]:
        return await self.repo.list_terms(academic_year_id)

    # PUBLIC_INTERFACE
    async def create_term(self, payload: TermCreate) -> Term:
        """Create a term in an existing year; an active term deactivates its siblings."""
        if await self.repo.get_year(payload.academic_year_id) is None:
            raise NotFoundError("Academic year not found")
        if payload.start_date > payload.end_date:
            raise BadRequestError("start_date must not be after end_date")
        if payload.is_active:
            await self.repo.deactivate_other_terms(payload.academic_year_id)
        term = await self.repo.create(Term(**payload.model_dump()))
        await self.session.commit()
        return term

    # Classes, subjects, grading scales
    # PUBLIC_INTERFACE
    async def create_class(self, payload: ClassCreate) -> SchoolClass:
        if await self.repo.get_year(payload.academic_year_id) is None:
            raise NotFoundError("Academic year not found")
        school_class = await self.repo.create(SchoolClass(**payload.model_dump()))
        await self.session.commit()
        return school_class

    # PUBLIC_INTERFACE
    async def create_subject(self, payload: SubjectCreate) -> Subject:
        subject = await self.repo.create(Subject(**payload.model_dump()))
        await self.session.commit()
        return subject

    # PUBLIC_INTERFACE
    async def create_grading_scale(self, payload: GradingScaleCreate) -> GradingScale:
        values = payload.model_dump()
        for band in values["grades"]:
            if band["min_score"] > band["max_score"]:
                raise BadRequestError(f"Grade {band['grade']}: min_score exceeds max_score")
        scale = await self.repo.create(GradingScale(**values))
        await self.session.commit()
        return scale

    # Timetables
    async def _check_periods(
        self, periods: Sequence[PeriodIn], academic_year_id: UUID, timetable_id: Optional[UUID], active: bool
    ) -> None:
        overlaps = find_period_overlaps(periods)
        if overlaps:
            raise BadRequestError("Timetable periods overlap", details=overlaps)
        if not active:
            return
        booked = await self.repo.list_active_periods(
            academic_year_id=academic_year_id,
            teacher_ids=list({p.teacher_id for p in periods}),
            exclude_timetable_id=timetable_id,
        )
        clashes = [
            f"Teacher {p.teacher_id} is already booked on {p.day_of_week} {p.start_time:%H:%M}-{p.end_time:%H:%M}"
            for p in periods
            for other in booked
            if other.teacher_id == p.teacher_id
            and other.day_of_week == p.day_of_week
            and _clashes(p.start_time, p.end_time, other.start_time, other.end_time)
        ]
        if clashes:
            raise ConflictError("Teacher double-booked", details=sorted(set(clashes)))

    # PUBLIC_INTERFACE
    async def list_timetables(
        self, class_id: Optional[UUID] = None, academic_year_id: Optional[UUID] = None
    ) -> List[Timetable]:
        return await self.repo.list_timetables(class_id=class_id, academic_year_id=academic_year_id)

    # PUBLIC_INTERFACE
    async def create_timetable(self, payload: TimetableCreate) -> Timetable:
        """
        Create a timetable with its periods.

        Raises:
            NotFoundError: unknown class or academic year.
            ConflictError: same name exists for the class/year/term, or a teacher is double-booked.
            BadRequestError: periods overlap on the same day.
        """
        if await self.repo.get_class(payload.class_id) is None:
            raise NotFoundError("Class not found")
        if await self.repo.get_year(payload.academic_year_id) is None:
            raise NotFoundError("Academic year not found")
        existing = await self.repo.find_timetable(
            name=payload.name,
            class_id=payload.class_id,
            academic_year_id=payload.academic_year_id,
            term_id=payload.term_id,
        )
        if existing is not None:
            raise ConflictError("A timetable with this name already exists for the class, year and term")
        await self._check_periods(payload.periods, payload.academic_year_id, None, payload.is_active)
        if payload.is_active:
            await self.repo.deactivate_timetables(
                class_id=payload.class_id, academic_year_id=payload.academic_year_id, term_id=payload.term_id
            )
        values = payload.model_dump(exclude={"periods"})
        timetable = Timetable(**values, version=1)
        timetable.periods = [TimetablePeriod(**p.model_dump()) for p in payload.periods]
        timetable = await self.repo.create(timetable)
        await self.session.commit()
        return timetable

    # PUBLIC_INTERFACE
    async def replace_periods(self, timetable_id: UUID, periods: Sequence[PeriodIn]) -> Timetable:
        """Replace every period of a timetable and bump its version."""
        timetable = await self.repo.get(Timetable, timetable_id)
        if timetable is None:
            raise NotFoundError("Timetable not found")
        await self._check_periods(periods, timetable.academic_year_id, timetable.id, timetable.is_active)
        timetable.periods = [TimetablePeriod(**p.model_dump()) for p in periods]
        timetable.version = (timetable.version or 0) + 1
        await self.repo.flush()
        await self.repo.refresh(timetable)
        await self.session.commit()
        return timetable

    # Attendance
    async def _ensure_can_take_attendance(
        self, actor: Principal, class_id: UUID, academic_year_id: UUID, subject_id: Optional[UUID]
    ) -> None:
        if actor.role != TEACHER:
            return
        assigned = await self.users.is_teacher_assigned(
            teacher_user_id=actor.tenant_user_id,
            class_id=class_id,
            academic_year_id=academic_year_id,
            subject_id=subject_id,
        )
        if not assigned:
            raise PermissionDeniedError("You are not assigned to this class for the academic year")

    # PUBLIC_INTERFACE
    async def submit_attendance(self, payload: AttendanceSubmit, actor: Principal) -> List[Attendance]:
        """
        Upsert one attendance row per student for the day.

        Teachers must be assigned to the class (and to the subject when one is given).
        """
        await self._ensure_can_take_attendance(actor, payload.class_id, payload.academic_year_id, payload.subject_id)
        if await self.repo.get_class(payload.class_id) is None:
            raise NotFoundError("Class not found")
        rows: List[Attendance] = []
        entries = {entry.student_id: entry for entry in payload.entries}
        for entry in entries.values():
            row = await self.repo.find_attendance(
                student_id=entry.student_id,
                class_id=payload.class_id,
                academic_year_id=payload.academic_year_id,
                attendance_date=payload.attendance_date,
                subject_id=payload.subject_id,
            )
            if row is None:
                row = Attendance(
                    student_id=entry.student_id,
                    class_id=payload.class_id,
                    subject_id=payload.subject_id,
                    academic_year_id=payload.academic_year_id,
                    attendance_date=payload.attendance_date,
                )
                await self.repo.add(row)
            row.status = entry.status
            row.remarks = entry.remarks
            row.recorded_by_id = actor.tenant_user_id
            rows.append(row)
        await self.repo.flush()
        await self.session.commit()
        logger.info(
            "Attendance recorded for %d students in class %s on %s",
            len(rows), payload.class_id, payload.attendance_date,
        )
        return rows

    # PUBLIC_INTERFACE
    async def get_attendance(
        self,
        actor: Principal,
        *,
        class_id: UUID,
        academic_year_id: UUID,
        attendance_date: date,
        subject_id: Optional[UUID] = None,
    ) -> List[Attendance]:
        await self._ensure_can_take_attendance(actor, class_id, academic_year_id, subject_id)
        return await self.repo.list_attendance(
            class_id=class_id,
            academic_year_id=academic_year_id,
            attendance_date=attendance_date,
            subject_id=subject_id,
        )
