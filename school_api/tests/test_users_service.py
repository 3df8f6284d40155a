"""Unit tests for school user administration and promotion."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.core.errors import BadRequestError, ConflictError, NotFoundError
from src.core.roles import ADMIN, STUDENT, TEACHER
from src.core.security import verify_password
from src.schemas.users import AssignmentIn, PromotionRequest, StudentProfileIn, UserCreate, UserUpdate
from src.services.users import UserService


@pytest.fixture
def service(mock_db):
    svc = UserService(mock_db)
    svc.repo = AsyncMock()
    svc.academics = AsyncMock()
    svc.audit = AsyncMock()
    svc.repo.get_user_by_username.return_value = None

    async def _create_user(**values):
        return SimpleNamespace(id=uuid4(), **values)

    svc.repo.create_user.side_effect = _create_user
    return svc


def _user(role, **overrides):
    values = dict(
        username=" Amina.Juma ",
        password="s3cret!",
        role=role,
        first_name="Amina",
        last_name="Juma",
    )
    values.update(overrides)
    return UserCreate(**values)


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_student_gets_profile_in_the_class_year(self, service, mock_db):
        class_id, year_id = uuid4(), uuid4()
        service.academics.get_class.return_value = SimpleNamespace(academic_year_id=year_id)
        payload = _user(STUDENT, student=StudentProfileIn(student_id_number="S-001", current_class_id=class_id))

        user = await service.create_user(payload)

        assert user.username == "amina.juma"
        assert verify_password("s3cret!", user.password_hash)
        profile = service.repo.create_student.await_args.kwargs
        assert profile["user_id"] == user.id
        assert profile["current_academic_year_id"] == year_id
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_student_requires_profile(self, service):
        with pytest.raises(BadRequestError):
            await service.create_user(_user(STUDENT))

    @pytest.mark.asyncio
    async def test_teacher_gets_empty_profile(self, service):
        await service.create_user(_user(TEACHER))
        service.repo.create_teacher.assert_awaited_once()
        service.repo.create_student.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_admin_has_no_profile(self, service):
        await service.create_user(_user(ADMIN))
        service.repo.create_teacher.assert_not_awaited()
        service.repo.create_student.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_duplicate_username(self, service, mock_db):
        service.repo.get_user_by_username.return_value = SimpleNamespace(id=uuid4())
        with pytest.raises(ConflictError):
            await service.create_user(_user(ADMIN))
        mock_db.commit.assert_not_awaited()

    def test_unknown_role_is_rejected(self):
        with pytest.raises(ValueError):
            _user("janitor")


class TestUpdateUser:
    @pytest.mark.asyncio
    async def test_deactivation_is_a_soft_delete(self, service, monkeypatch):
        from src.services import users as users_module

        monkeypatch.setattr(users_module, "safe_values", lambda obj: {})
        user = SimpleNamespace(id=uuid4(), role=STUDENT, is_active=True)
        profile = SimpleNamespace(is_active=True)
        service.repo.get_user_by_id.return_value = user
        service.repo.get_student_by_user_id.return_value = profile

        async def _update(target, values):
            for key, value in values.items():
                setattr(target, key, value)
            return target

        service.repo.update_user.side_effect = _update

        await service.update_user(user.id, UserUpdate(is_active=False))

        assert user.is_active is False
        assert profile.is_active is False
        assert service.audit.log.await_args.args[0] == "DELETE"

    @pytest.mark.asyncio
    async def test_unknown_user(self, service):
        service.repo.get_user_by_id.return_value = None
        with pytest.raises(NotFoundError):
            await service.update_user(uuid4(), UserUpdate(first_name="X"))


class TestPromotion:
    @pytest.mark.asyncio
    async def test_empty_list(self, service):
        with pytest.raises(BadRequestError):
            await service.promote(PromotionRequest(student_ids=[], target_class_id=uuid4()))

    @pytest.mark.asyncio
    async def test_unknown_class(self, service):
        service.academics.get_class.return_value = None
        with pytest.raises(NotFoundError):
            await service.promote(PromotionRequest(student_ids=[uuid4()], target_class_id=uuid4()))

    @pytest.mark.asyncio
    async def test_moves_students_into_class_year(self, service, mock_db):
        target = SimpleNamespace(id=uuid4(), academic_year_id=uuid4(), name="Form 2A")
        service.academics.get_class.return_value = target
        service.repo.execute.return_value = MagicMock(rowcount=2)

        result = await service.promote(PromotionRequest(student_ids=[uuid4(), uuid4()], target_class_id=target.id))

        assert result.promoted == 2
        assert result.academic_year_id == target.academic_year_id
        assert result.message == "2 students promoted successfully."
        mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_assignments_are_deduplicated(service):
    class_id, subject_id, year_id = uuid4(), uuid4(), uuid4()
    same = AssignmentIn(class_id=class_id, subject_id=subject_id, academic_year_id=year_id)

    await service.replace_assignments(uuid4(), [same, same])

    rows = service.repo.replace_assignments.await_args.args[1]
    assert rows == [same.model_dump()]


@pytest.mark.asyncio
async def test_assignments_for_unknown_teacher(service, mock_db):
    service.repo.get_teacher.return_value = None
    with pytest.raises(NotFoundError):
        await service.replace_assignments(uuid4(), [])
    mock_db.commit.assert_not_awaited()
