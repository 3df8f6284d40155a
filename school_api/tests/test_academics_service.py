"""Unit tests for AcademicsService and timetable period checks."""

from datetime import date, time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.core.errors import BadRequestError, ConflictError, NotFoundError, PermissionDeniedError
from src.schemas.academics import (
    AcademicYearCreate,
    AttendanceEntry,
    AttendanceSubmit,
    PeriodIn,
    TimetableCreate,
)
from src.services.academics import AcademicsService, find_period_overlaps


def _period(day, start, end, teacher_id=None):
    return PeriodIn(
        day_of_week=day,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        subject_id=uuid4(),
        teacher_id=teacher_id or uuid4(),
    )


@pytest.fixture
def service(mock_db):
    svc = AcademicsService(mock_db)
    svc.repo = AsyncMock()
    svc.users = AsyncMock()
    svc.audit = AsyncMock()
    return svc


class TestFindPeriodOverlaps:
    def test_back_to_back_periods_do_not_overlap(self):
        periods = [_period("Monday", "08:00", "09:00"), _period("Monday", "09:00", "10:00")]
        assert find_period_overlaps(periods) == []

    def test_overlap_on_same_day(self):
        periods = [_period("Monday", "08:00", "09:00"), _period("Monday", "08:30", "09:30")]
        problems = find_period_overlaps(periods)
        assert len(problems) == 1
        assert problems[0].startswith("Monday")

    def test_same_times_on_different_days(self):
        periods = [_period("Monday", "08:00", "09:00"), _period("Tuesday", "08:00", "09:00")]
        assert find_period_overlaps(periods) == []

    def test_invalid_period_rejected_by_schema(self):
        with pytest.raises(ValueError):
            _period("Funday", "08:00", "09:00")
        with pytest.raises(ValueError):
            _period("Monday", "10:00", "09:00")


class TestAcademicYears:
    @pytest.mark.asyncio
    async def test_create_active_year_deactivates_others(self, service, mock_db):
        service.repo.get_year_by_name.return_value = None
        service.repo.create.side_effect = lambda obj: obj
        payload = AcademicYearCreate(
            name="2025-2026", start_date=date(2025, 1, 6), end_date=date(2025, 11, 28), is_active=True
        )

        year = await service.create_year(payload)

        service.repo.deactivate_other_years.assert_awaited_once()
        assert year.name == "2025-2026"
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_duplicate_year_name(self, service, mock_db):
        service.repo.get_year_by_name.return_value = SimpleNamespace(id=uuid4(), name="2025-2026")
        payload = AcademicYearCreate(name="2025-2026", start_date=date(2025, 1, 6), end_date=date(2025, 11, 28))

        with pytest.raises(ConflictError):
            await service.create_year(payload)
        mock_db.commit.assert_not_awaited()

    def test_year_dates_must_be_ordered(self):
        with pytest.raises(ValueError):
            AcademicYearCreate(name="bad", start_date=date(2025, 12, 1), end_date=date(2025, 1, 1))


class TestTimetables:
    def _payload(self, periods, is_active=True):
        return TimetableCreate(
            name="Form 1A main",
            academic_year_id=uuid4(),
            class_id=uuid4(),
            is_active=is_active,
            periods=periods,
        )

    @pytest.mark.asyncio
    async def test_unknown_class(self, service):
        service.repo.get_class.return_value = None
        with pytest.raises(NotFoundError):
            await service.create_timetable(self._payload([]))

    @pytest.mark.asyncio
    async def test_overlapping_periods(self, service):
        service.repo.find_timetable.return_value = None
        periods = [_period("Monday", "08:00", "09:00"), _period("Monday", "08:30", "09:30")]
        with pytest.raises(BadRequestError):
            await service.create_timetable(self._payload(periods))

    @pytest.mark.asyncio
    async def test_teacher_double_booked_in_another_active_timetable(self, service, mock_db):
        teacher_id = uuid4()
        service.repo.find_timetable.return_value = None
        service.repo.list_active_periods.return_value = [
            SimpleNamespace(
                teacher_id=teacher_id, day_of_week="Monday", start_time=time(8, 30), end_time=time(9, 30)
            )
        ]
        payload = self._payload([_period("Monday", "08:00", "09:00", teacher_id=teacher_id)])

        with pytest.raises(ConflictError) as exc:
            await service.create_timetable(payload)
        assert "double-booked" in exc.value.message
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_inactive_timetable_skips_teacher_check(self, service, mock_db):
        service.repo.find_timetable.return_value = None
        service.repo.create.side_effect = lambda obj: obj
        payload = self._payload([_period("Monday", "08:00", "09:00")], is_active=False)

        timetable = await service.create_timetable(payload)

        service.repo.list_active_periods.assert_not_awaited()
        assert timetable.version == 1
        assert len(timetable.periods) == 1
        mock_db.commit.assert_awaited_once()


class TestAttendance:
    def _payload(self):
        return AttendanceSubmit(
            class_id=uuid4(),
            academic_year_id=uuid4(),
            attendance_date=date(2025, 3, 3),
            entries=[AttendanceEntry(student_id=uuid4(), status="Present")],
        )

    @pytest.mark.asyncio
    async def test_unassigned_teacher_is_refused(self, service, teacher):
        service.users.is_teacher_assigned.return_value = False
        with pytest.raises(PermissionDeniedError):
            await service.submit_attendance(self._payload(), teacher)

    @pytest.mark.asyncio
    async def test_existing_row_is_updated(self, service, teacher, mock_db):
        service.users.is_teacher_assigned.return_value = True
        existing = MagicMock(status="Absent")
        service.repo.find_attendance.return_value = existing

        rows = await service.submit_attendance(self._payload(), teacher)

        assert rows == [existing]
        assert existing.status == "Present"
        assert existing.recorded_by_id == teacher.tenant_user_id
        service.repo.add.assert_not_awaited()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_repeated_student_keeps_last_entry(self, service, teacher):
        service.users.is_teacher_assigned.return_value = True
        service.repo.find_attendance.return_value = None
        student_id = uuid4()
        payload = self._payload()
        payload.entries = [
            AttendanceEntry(student_id=student_id, status="Absent"),
            AttendanceEntry(student_id=student_id, status="Late", remarks="bus"),
        ]

        rows = await service.submit_attendance(payload, teacher)

        assert len(rows) == 1
        assert rows[0].status == "Late"
        assert rows[0].remarks == "bus"
        service.repo.add.assert_awaited_once()
