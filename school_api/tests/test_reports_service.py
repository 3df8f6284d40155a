"""Unit tests for grading and the student export frame."""

from datetime import date
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.core.errors import NotFoundError
from src.services.reports import STUDENT_EXPORT_COLUMNS, ReportService, apply_grading_scale

SCALE = [
    {"grade": "A", "min_score": 75, "max_score": 100, "remarks": "Excellent"},
    {"grade": "B", "min_score": 65, "max_score": 74.99, "remarks": "Very good"},
    {"grade": "F", "min_score": 0, "max_score": 29.99},
]


class TestApplyGradingScale:
    def test_band_lookup(self):
        assert apply_grading_scale(80.0, SCALE) == ("A", "Excellent")
        assert apply_grading_scale(65.0, SCALE) == ("B", "Very good")

    def test_band_without_remarks(self):
        assert apply_grading_scale(10.0, SCALE) == ("F", "N/A")

    def test_gap_between_bands(self):
        assert apply_grading_scale(50.0, SCALE) == ("N/A", "Out of Range")

    def test_no_scale_or_percentage(self):
        assert apply_grading_scale(80.0, None) == ("N/A", "N/A")
        assert apply_grading_scale(None, SCALE) == ("N/A", "N/A")


def _student(name, **overrides):
    first, last = name.split()
    values = dict(
        id=uuid4(),
        user_id=uuid4(),
        student_id_number=f"S-{first[:3].upper()}",
        user=SimpleNamespace(full_name=name, first_name=first, last_name=last, username=first.lower(), email=None),
        gender="Female",
        date_of_birth=date(2010, 5, 4),
        admission_date=None,
        current_academic_year=SimpleNamespace(name="2025"),
        current_class=SimpleNamespace(name="Form 1A"),
        is_active=True,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def service(mock_db):
    svc = ReportService(mock_db)
    svc.academics = AsyncMock()
    svc.exams = AsyncMock()
    svc.users = AsyncMock()
    return svc


@pytest.mark.asyncio
async def test_class_term_report(service):
    amina, baraka = _student("Amina Juma"), _student("Baraka Mushi")
    service.academics.get_class.return_value = SimpleNamespace(id=uuid4(), name="Form 1A")
    service.academics.get_default_grading_scale.return_value = SimpleNamespace(name="Standard", grades=SCALE)
    service.users.list_students.return_value = [baraka, amina]
    service.exams.totals_by_student.return_value = {amina.user_id: (160, 200)}

    report = await service.class_term_report(uuid4(), uuid4())

    assert report.grading_scale == "Standard"
    by_name = {r.student_name: r for r in report.rows}
    assert by_name["Amina Juma"].percentage == 80.0
    assert by_name["Amina Juma"].grade == "A"
    assert by_name["Baraka Mushi"].percentage == 0.0
    assert by_name["Baraka Mushi"].grade == "F"
    assert [r.student_name for r in report.rows] == ["Amina Juma", "Baraka Mushi"]


@pytest.mark.asyncio
async def test_class_term_report_unknown_class(service):
    service.academics.get_class.return_value = None
    with pytest.raises(NotFoundError):
        await service.class_term_report(uuid4(), uuid4())


@pytest.mark.asyncio
async def test_students_frame(service):
    service.users.list_students.return_value = [_student("Amina Juma", is_active=False)]

    frame = await service.students_frame()

    assert list(frame.columns) == STUDENT_EXPORT_COLUMNS
    row = frame.iloc[0]
    assert row["email"] == ""
    assert row["date_of_birth"] == "2010-05-04"
    assert row["status"] == "Inactive"


@pytest.mark.asyncio
async def test_students_frame_empty(service):
    service.users.list_students.return_value = []
    frame = await service.students_frame()
    assert frame.empty
    assert list(frame.columns) == STUDENT_EXPORT_COLUMNS
