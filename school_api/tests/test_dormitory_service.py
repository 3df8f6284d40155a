"""Unit tests for room allocation rules."""

from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.core.errors import BadRequestError, ConflictError, NotFoundError
from src.db.models.dormitory import Room, RoomOccupant
from src.schemas.dormitory import DormitoryCreate, RoomCreate, RoomUpdate
from src.services.dormitory import DormitoryService


@pytest.fixture
def service(mock_db):
    svc = DormitoryService(mock_db)
    svc.repo = AsyncMock()
    svc.repo.find_room.return_value = None
    svc.repo.rooms_of_users.return_value = {}

    async def _add(room):
        room.id = uuid4()

    svc.repo.add.side_effect = _add
    return svc


def _room(capacity=2, occupants=()):
    return Room(
        id=uuid4(),
        room_number="A1",
        dormitory_id=uuid4(),
        capacity=capacity,
        occupancies=[RoomOccupant(user_id=u) for u in occupants],
    )


class TestCreateRoom:
    @pytest.mark.asyncio
    async def test_duplicate_occupants_are_collapsed(self, service, mock_db):
        student = uuid4()
        payload = RoomCreate(room_number="A1", dormitory_id=uuid4(), capacity=1, occupant_ids=[student, student])

        read = await service.create_room(payload)

        assert read.occupant_ids == [student]
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_over_capacity(self, service):
        payload = RoomCreate(room_number="A1", dormitory_id=uuid4(), capacity=1, occupant_ids=[uuid4(), uuid4()])
        with pytest.raises(BadRequestError):
            await service.create_room(payload)

    @pytest.mark.asyncio
    async def test_occupant_housed_elsewhere(self, service):
        student = uuid4()
        service.repo.rooms_of_users.return_value = {student: uuid4()}
        payload = RoomCreate(room_number="A1", dormitory_id=uuid4(), capacity=2, occupant_ids=[student])

        with pytest.raises(ConflictError) as exc:
            await service.create_room(payload)
        assert exc.value.details == {"user_ids": [str(student)]}

    @pytest.mark.asyncio
    async def test_room_number_taken(self, service):
        service.repo.find_room.return_value = SimpleNamespace(id=uuid4())
        with pytest.raises(ConflictError):
            await service.create_room(RoomCreate(room_number="A1", dormitory_id=uuid4(), capacity=2))

    @pytest.mark.asyncio
    async def test_unknown_dormitory(self, service):
        service.repo.get_dormitory.return_value = None
        with pytest.raises(NotFoundError):
            await service.create_room(RoomCreate(room_number="A1", dormitory_id=uuid4(), capacity=2))


class TestUpdateRoom:
    @pytest.mark.asyncio
    async def test_replacing_occupants_keeps_current_residents(self, service):
        stays, leaves, arrives = uuid4(), uuid4(), uuid4()
        room = _room(capacity=2, occupants=[stays, leaves])
        service.repo.get_room.return_value = room
        service.repo.rooms_of_users.return_value = {stays: room.id}

        read = await service.update_room(room.id, RoomUpdate(occupant_ids=[stays, arrives]))

        assert set(read.occupant_ids) == {stays, arrives}

    @pytest.mark.asyncio
    async def test_shrinking_capacity_below_occupancy(self, service):
        room = _room(capacity=2, occupants=[uuid4(), uuid4()])
        service.repo.get_room.return_value = room
        with pytest.raises(BadRequestError):
            await service.update_room(room.id, RoomUpdate(capacity=1))


class TestDeleteRoom:
    @pytest.mark.asyncio
    async def test_occupied_room_cannot_be_deleted(self, service):
        service.repo.get_room.return_value = _room(occupants=[uuid4()])
        with pytest.raises(BadRequestError):
            await service.delete_room(uuid4())
        service.repo.delete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_room_is_deleted(self, service, mock_db):
        room = _room()
        service.repo.get_room.return_value = room
        await service.delete_room(room.id)
        service.repo.delete.assert_awaited_once_with(room)
        mock_db.commit.assert_awaited_once()


def test_dormitory_type_is_restricted():
    with pytest.raises(ValueError):
        DormitoryCreate(name="Kilimanjaro", type="Staff")
    assert DormitoryCreate(name="Kilimanjaro", type="Girls").type == "Girls"


@pytest.mark.asyncio
async def test_unallocated_students_shape(service):
    student = SimpleNamespace(
        user_id=uuid4(),
        student_id_number="S-9",
        gender="Female",
        user=SimpleNamespace(full_name="Neema Ally"),
        current_class=None,
    )
    service.repo.list_unallocated_students.return_value = [student]

    rows = await service.unallocated_students()

    assert rows[0].name == "Neema Ally"
    assert rows[0].class_name is None
