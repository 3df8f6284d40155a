"""Unit tests for MarksService.submit_batch."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.core.errors import NotFoundError, PermissionDeniedError
from src.core.roles import STUDENT, TEACHER
from src.schemas.exams import MarkEntry, MarksBatch
from src.services.marks import MarksService


@pytest.fixture
def assessment():
    exam = SimpleNamespace(academic_year_id=uuid4(), term_id=uuid4())
    return SimpleNamespace(
        id=uuid4(),
        exam=exam,
        class_id=uuid4(),
        subject_id=uuid4(),
        max_marks=100,
        assessment_name="Midterm",
    )


@pytest.fixture
def students():
    return {uuid4(): SimpleNamespace(role=STUDENT) for _ in range(3)}


@pytest.fixture
def service(mock_db, assessment, students):
    svc = MarksService(mock_db)
    svc.exams = AsyncMock()
    svc.users = AsyncMock()
    svc.audit = AsyncMock()
    svc.exams.get_assessment.return_value = assessment
    svc.exams.get_mark.return_value = None
    svc.users.get_teacher_by_user_id.return_value = SimpleNamespace(id=uuid4())
    svc.users.is_teacher_assigned.return_value = True

    async def _get_user(user_id):
        return students.get(user_id)

    svc.users.get_user_by_id.side_effect = _get_user
    return svc


@pytest.mark.asyncio
async def test_valid_marks_are_inserted(service, assessment, students, teacher, mock_db):
    ids = list(students)
    payload = MarksBatch(
        assessment_id=assessment.id,
        marks=[MarkEntry(student_id=ids[0], marks_obtained=88.5), MarkEntry(student_id=ids[1], marks_obtained=0)],
    )

    result = await service.submit_batch(payload, teacher)

    assert result.processed == 2
    assert result.skipped == []
    assert result.message == "Marks processed. 2 records updated/inserted."
    first = service.exams.add.await_args_list[0].args[0]
    assert first.marks_obtained == Decimal("88.5")
    assert first.academic_year_id == assessment.exam.academic_year_id
    assert first.recorded_by_id == teacher.tenant_user_id
    mock_db.commit.assert_awaited_once()
    service.audit.log.assert_awaited_once()


@pytest.mark.asyncio
async def test_existing_mark_is_updated_in_place(service, assessment, students, teacher):
    student_id = next(iter(students))
    existing = SimpleNamespace(marks_obtained=Decimal("40"), comments="")
    service.exams.get_mark.return_value = existing

    result = await service.submit_batch(
        MarksBatch(assessment_id=assessment.id, marks=[MarkEntry(student_id=student_id, marks_obtained=55)]),
        teacher,
    )

    assert result.processed == 1
    assert existing.marks_obtained == Decimal("55")
    service.exams.add.assert_not_awaited()


@pytest.mark.asyncio
async def test_unknown_and_out_of_range_entries_are_skipped(service, assessment, students, teacher):
    ids = list(students)
    stranger = uuid4()
    payload = MarksBatch(
        assessment_id=assessment.id,
        marks=[
            MarkEntry(student_id=stranger, marks_obtained=50),
            MarkEntry(student_id=ids[0], marks_obtained=101),
            MarkEntry(student_id=ids[1], marks_obtained=-1),
            MarkEntry(student_id=ids[2], marks_obtained=100),
        ],
    )

    result = await service.submit_batch(payload, teacher)

    assert result.processed == 1
    reasons = {s.student_id: s.reason for s in result.skipped}
    assert reasons[stranger] == "Unknown student"
    assert reasons[ids[0]] == "Mark out of range (0-100)"
    assert reasons[ids[1]] == "Mark out of range (0-100)"


@pytest.mark.asyncio
async def test_non_student_user_is_skipped(service, assessment, students, teacher):
    other_teacher = uuid4()
    students[other_teacher] = SimpleNamespace(role=TEACHER)

    result = await service.submit_batch(
        MarksBatch(assessment_id=assessment.id, marks=[MarkEntry(student_id=other_teacher, marks_obtained=10)]),
        teacher,
    )

    assert result.processed == 0
    assert result.skipped[0].reason == "Unknown student"
    service.audit.log.assert_not_awaited()


@pytest.mark.asyncio
async def test_null_mark_deletes_existing(service, assessment, students, teacher):
    student_id = next(iter(students))
    existing = SimpleNamespace(marks_obtained=Decimal("70"))
    service.exams.get_mark.return_value = existing

    result = await service.submit_batch(
        MarksBatch(assessment_id=assessment.id, marks=[MarkEntry(student_id=student_id, marks_obtained=None)]),
        teacher,
    )

    service.exams.delete.assert_awaited_once_with(existing)
    assert result.processed == 1


@pytest.mark.asyncio
async def test_null_mark_without_existing_is_a_no_op(service, assessment, students, teacher):
    student_id = next(iter(students))

    result = await service.submit_batch(
        MarksBatch(assessment_id=assessment.id, marks=[MarkEntry(student_id=student_id)]),
        teacher,
    )

    service.exams.delete.assert_not_awaited()
    assert result.processed == 0
    assert result.skipped == []


@pytest.mark.asyncio
async def test_unassigned_teacher_is_refused(service, assessment, teacher, mock_db):
    service.users.is_teacher_assigned.return_value = False
    with pytest.raises(PermissionDeniedError):
        await service.submit_batch(MarksBatch(assessment_id=assessment.id), teacher)
    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_user_without_teacher_profile_is_refused(service, assessment, teacher):
    service.users.get_teacher_by_user_id.return_value = None
    with pytest.raises(PermissionDeniedError):
        await service.submit_batch(MarksBatch(assessment_id=assessment.id), teacher)


@pytest.mark.asyncio
async def test_superadmin_cannot_submit(service, assessment, superadmin):
    with pytest.raises(PermissionDeniedError):
        await service.submit_batch(MarksBatch(assessment_id=assessment.id), superadmin)


@pytest.mark.asyncio
async def test_unknown_assessment(service, teacher):
    service.exams.get_assessment.return_value = None
    with pytest.raises(NotFoundError):
        await service.submit_batch(MarksBatch(assessment_id=uuid4()), teacher)


@pytest.mark.asyncio
async def test_repeated_student_keeps_last_mark(service, assessment, students, teacher, mock_db):
    student_id = next(iter(students))
    payload = MarksBatch(
        assessment_id=assessment.id,
        marks=[MarkEntry(student_id=student_id, marks_obtained=50), MarkEntry(student_id=student_id, marks_obtained=60)],
    )

    result = await service.submit_batch(payload, teacher)

    assert result.processed == 1
    service.exams.add.assert_awaited_once()
    assert service.exams.add.await_args.args[0].marks_obtained == Decimal("60")
    mock_db.commit.assert_awaited_once()
