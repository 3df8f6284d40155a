from __future__ import annotations

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal
from src.core.errors import BadRequestError, NotFoundError
from src.core.roles import STUDENT
from src.db.models.pharmacy import Dispensation, HealthRecord, Medication, Visit
from src.repositories.pharmacy import PharmacyRepository
from src.repositories.users import UserRepository
from src.schemas.pharmacy import (
    DispensationCreate,
    HealthRecordUpsert,
    MedicationCreate,
    VisitCheckOut,
    VisitCreate,
)
from src.services.audit import AuditService
from src.services.base import BaseService

logger = logging.getLogger(__name__)


class PharmacyService(BaseService):
    """Sick bay: medication stock, visits, dispensing and health records."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = PharmacyRepository(session)
        self.users = UserRepository(session)
        self.audit = AuditService(session)

    async def _require_student(self, student_id: UUID) -> None:
        user = await self.users.get_user_by_id(student_id)
        if user is None or user.role != STUDENT:
            raise NotFoundError("Student not found")

    # PUBLIC_INTERFACE
    async def create_medication(self, payload: MedicationCreate) -> Medication:
        medication = await self.repo.create(Medication(**payload.model_dump()))
        await self.session.commit()
        return medication

    # PUBLIC_INTERFACE
    async def open_visit(self, payload: VisitCreate, actor: Principal) -> Visit:
        await self._require_student(payload.student_id)
        visit = await self.repo.create(Visit(recorded_by_id=actor.tenant_user_id, **payload.model_dump()))
        await self.session.commit()
        return visit

    # PUBLIC_INTERFACE
    async def check_out(self, visit_id: UUID, payload: VisitCheckOut) -> Visit:
        visit = await self.repo.get_visit(visit_id)
        if visit is None:
            raise NotFoundError("Visit not found")
        if visit.check_out_time is not None:
            raise BadRequestError("Visit is already checked out")
        for key, value in payload.model_dump(exclude_none=True).items():
            setattr(visit, key, value)
        visit.check_out_time = datetime.now(timezone.utc)
        await self.repo.flush()
        await self.repo.refresh(visit)
        await self.session.commit()
        return visit

    # PUBLIC_INTERFACE
    async def dispense(self, payload: DispensationCreate, actor: Principal) -> Dispensation:
        """
        Hand out medication during an open visit, in one transaction.

        Raises:
            NotFoundError: unknown visit or medication.
            BadRequestError: visit already checked out or not enough stock.
        """
        visit = await self.repo.get_visit(payload.visit_id)
        if visit is None:
            raise NotFoundError("Visit not found")
        if visit.check_out_time is not None:
            raise BadRequestError("Cannot dispense medication for a checked-out visit")
        medication = await self.repo.get_medication_for_update(payload.medication_id)
        if medication is None:
            raise NotFoundError("Medication not found")
        if medication.stock < payload.quantity_dispensed:
            raise BadRequestError(
                f"Insufficient stock for {medication.name}: {medication.stock} {medication.unit} available"
            )

        medication.stock -= payload.quantity_dispensed
        dispensation = await self.repo.create(
            Dispensation(
                visit_id=visit.id,
                medication_id=medication.id,
                quantity_dispensed=payload.quantity_dispensed,
                dispensation_date=datetime.now(timezone.utc),
                dispensed_by_id=actor.tenant_user_id,
                notes=payload.notes,
            )
        )
        await self.audit.log(
            "CREATE",
            "Dispensation",
            actor=actor,
            entity_id=dispensation.id,
            details=f"Dispensed {payload.quantity_dispensed} {medication.unit} of {medication.name}",
            new=dispensation,
        )
        await self.session.commit()
        if medication.stock <= medication.low_stock_threshold:
            logger.warning("Medication %s is low on stock (%d left)", medication.name, medication.stock)
        return dispensation

    # PUBLIC_INTERFACE
    async def delete_dispensation(self, dispensation_id: UUID, actor: Principal) -> None:
        """Reverse a dispensation and return its quantity to stock, in one transaction."""
        dispensation = await self.repo.get_dispensation(dispensation_id)
        if dispensation is None:
            raise NotFoundError("Dispensation not found")
        visit = dispensation.visit
        if visit is not None and visit.check_out_time is not None:
            raise BadRequestError("Cannot delete a dispensation of a checked-out visit")

        original = dispensation
        medication = None
        if dispensation.medication_id is not None:
            medication = await self.repo.get_medication_for_update(dispensation.medication_id)
        if medication is not None:
            medication.stock += dispensation.quantity_dispensed
        else:
            logger.warning(
                "Medication for dispensation %s no longer exists; stock not restored", dispensation.id
            )
        await self.audit.log("DELETE", "Dispensation", actor=actor, entity_id=dispensation.id, original=original)
        await self.repo.delete(dispensation)
        await self.session.commit()

    # PUBLIC_INTERFACE
    async def get_health_record(self, student_id: UUID) -> HealthRecord:
        record = await self.repo.get_health_record(student_id)
        if record is None:
            raise NotFoundError("Health record not found")
        return record

    # PUBLIC_INTERFACE
    async def upsert_health_record(self, student_id: UUID, payload: HealthRecordUpsert) -> HealthRecord:
        await self._require_student(student_id)
        record = await self.repo.get_health_record(student_id)
        if record is None:
            record = await self.repo.create(HealthRecord(student_id=student_id, **payload.model_dump()))
        else:
            for key, value in payload.model_dump().items():
                setattr(record, key, value)
            await self.repo.flush()
            await self.repo.refresh(record)
        await self.session.commit()
        return record
