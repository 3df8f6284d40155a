"""Unit tests for sick bay stock and visits."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.core.deps import Principal
from src.core.errors import BadRequestError, NotFoundError
from src.core.roles import PHARMACY, STUDENT, TEACHER
from src.schemas.pharmacy import DispensationCreate, VisitCheckOut, VisitCreate
from src.services.pharmacy import PharmacyService


@pytest.fixture
def nurse():
    return Principal(id=str(uuid4()), role=PHARMACY, school_code="greenhill", name="Nurse Rehema")


@pytest.fixture
def medication():
    return SimpleNamespace(
        id=uuid4(), name="Paracetamol", unit="tablets", stock=20, low_stock_threshold=10
    )


@pytest.fixture
def visit():
    return SimpleNamespace(id=uuid4(), check_out_time=None)


@pytest.fixture
def service(mock_db, medication, visit):
    svc = PharmacyService(mock_db)
    svc.repo = AsyncMock()
    svc.users = AsyncMock()
    svc.audit = AsyncMock()
    svc.repo.create.side_effect = lambda obj: obj
    svc.repo.get_visit.return_value = visit
    svc.repo.get_medication_for_update.return_value = medication
    svc.users.get_user_by_id.return_value = SimpleNamespace(role=STUDENT)
    return svc


class TestDispense:
    @pytest.mark.asyncio
    async def test_reduces_stock(self, service, medication, visit, nurse, mock_db):
        payload = DispensationCreate(visit_id=visit.id, medication_id=medication.id, quantity_dispensed=4)

        dispensation = await service.dispense(payload, nurse)

        assert medication.stock == 16
        assert dispensation.dispensed_by_id == nurse.tenant_user_id
        service.audit.log.assert_awaited_once()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_insufficient_stock(self, service, medication, visit, nurse, mock_db):
        payload = DispensationCreate(visit_id=visit.id, medication_id=medication.id, quantity_dispensed=21)

        with pytest.raises(BadRequestError) as exc:
            await service.dispense(payload, nurse)
        assert "Paracetamol" in exc.value.message
        assert medication.stock == 20
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_checked_out_visit(self, service, medication, visit, nurse):
        visit.check_out_time = datetime.now(timezone.utc)
        with pytest.raises(BadRequestError):
            await service.dispense(
                DispensationCreate(visit_id=visit.id, medication_id=medication.id, quantity_dispensed=1), nurse
            )

    @pytest.mark.asyncio
    async def test_unknown_medication(self, service, visit, nurse):
        service.repo.get_medication_for_update.return_value = None
        with pytest.raises(NotFoundError):
            await service.dispense(
                DispensationCreate(visit_id=visit.id, medication_id=uuid4(), quantity_dispensed=1), nurse
            )


class TestDeleteDispensation:
    @pytest.mark.asyncio
    async def test_restores_stock(self, service, medication, visit, nurse):
        record = SimpleNamespace(id=uuid4(), visit=visit, medication_id=medication.id, quantity_dispensed=5)
        service.repo.get_dispensation.return_value = record

        await service.delete_dispensation(record.id, nurse)

        assert medication.stock == 25
        service.repo.delete.assert_awaited_once_with(record)

    @pytest.mark.asyncio
    async def test_refused_after_check_out(self, service, visit, nurse):
        visit.check_out_time = datetime.now(timezone.utc)
        service.repo.get_dispensation.return_value = SimpleNamespace(
            id=uuid4(), visit=visit, medication_id=uuid4(), quantity_dispensed=1
        )
        with pytest.raises(BadRequestError):
            await service.delete_dispensation(uuid4(), nurse)
        service.repo.delete.assert_not_awaited()


class TestVisits:
    @pytest.mark.asyncio
    async def test_visit_is_for_students_only(self, service, nurse):
        service.users.get_user_by_id.return_value = SimpleNamespace(role=TEACHER)
        with pytest.raises(NotFoundError):
            await service.open_visit(VisitCreate(student_id=uuid4(), symptoms="Headache"), nurse)

    @pytest.mark.asyncio
    async def test_check_out_stamps_time_once(self, service, visit):
        checked = await service.check_out(visit.id, VisitCheckOut(diagnosis="Malaria"))
        assert checked.check_out_time is not None
        assert checked.diagnosis == "Malaria"

        with pytest.raises(BadRequestError):
            await service.check_out(visit.id, VisitCheckOut())
