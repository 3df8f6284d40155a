from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import select

from src.db.models.pharmacy import Dispensation, HealthRecord, Medication, Visit
from .base import BaseRepository


class PharmacyRepository(BaseRepository):
    """Repository for medications, sick-bay visits, dispensations and health records."""

    async def get_medication(self, medication_id: UUID) -> Optional[Medication]:
        return await self.get(Medication, medication_id)

    async def get_medication_for_update(self, medication_id: UUID) -> Optional[Medication]:
        stmt = select(Medication).where(Medication.id == medication_id).with_for_update()
        return await self.scalar_one_or_none(stmt)

    async def list_medications(self, *, low_stock_only: bool = False) -> List[Medication]:
        stmt = select(Medication)
        if low_stock_only:
            stmt = stmt.where(Medication.stock <= Medication.low_stock_threshold)
        stmt = stmt.order_by(Medication.name)
        return list(await self.scalars(stmt))

    async def get_visit(self, visit_id: UUID) -> Optional[Visit]:
        return await self.get(Visit, visit_id)

    async def list_visits(
        self, *, student_id: Optional[UUID] = None, open_only: bool = False, limit: int = 100, offset: int = 0
    ) -> List[Visit]:
        stmt = select(Visit)
        if student_id:
            stmt = stmt.where(Visit.student_id == student_id)
        if open_only:
            stmt = stmt.where(Visit.check_out_time.is_(None))
        stmt = stmt.order_by(Visit.check_in_time.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_dispensation(self, dispensation_id: UUID) -> Optional[Dispensation]:
        return await self.get(Dispensation, dispensation_id)

    async def list_dispensations(self, visit_id: Optional[UUID] = None) -> List[Dispensation]:
        stmt = select(Dispensation)
        if visit_id:
            stmt = stmt.where(Dispensation.visit_id == visit_id)
        stmt = stmt.order_by(Dispensation.dispensation_date.desc())
        return list(await self.scalars(stmt))

    async def get_health_record(self, student_id: UUID) -> Optional[HealthRecord]:
        stmt = select(HealthRecord).where(HealthRecord.student_id == student_id)
        return await self.scalar_one_or_none(stmt)

    async def create(self, entity: Any) -> Any:
        await self.add(entity)
        await self.flush()
        await self.refresh(entity)
        return entity
