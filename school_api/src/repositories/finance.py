from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import func, select

from src.db.models.finance import Expense, FeeItem, FeePayment, Invoice
from .base import BaseRepository


class FinanceRepository(BaseRepository):
    """Repository for fee items, invoices, fee payments and expenses."""

    # Fee items
    async def get_fee_item(self, fee_item_id: UUID) -> Optional[FeeItem]:
        return await self.get(FeeItem, fee_item_id)

    async def list_fee_items(
        self, *, academic_year_id: Optional[UUID] = None, term_id: Optional[UUID] = None
    ) -> List[FeeItem]:
        stmt = select(FeeItem)
        if academic_year_id:
            stmt = stmt.where(FeeItem.academic_year_id == academic_year_id)
        if term_id:
            stmt = stmt.where(FeeItem.term_id == term_id)
        stmt = stmt.order_by(FeeItem.name)
        return list(await self.scalars(stmt))

    # Invoices
    async def get_invoice(self, invoice_id: UUID) -> Optional[Invoice]:
        return await self.get(Invoice, invoice_id)

    async def get_invoice_for_update(self, invoice_id: UUID) -> Optional[Invoice]:
        """Load an invoice with a row lock so concurrent payments add up."""
        stmt = select(Invoice).where(Invoice.id == invoice_id).with_for_update()
        return await self.scalar_one_or_none(stmt)

    async def list_invoices(
        self,
        *,
        student_id: Optional[UUID] = None,
        academic_year_id: Optional[UUID] = None,
        status: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Invoice]:
        stmt = select(Invoice)
        if student_id:
            stmt = stmt.where(Invoice.student_id == student_id)
        if academic_year_id:
            stmt = stmt.where(Invoice.academic_year_id == academic_year_id)
        if status:
            stmt = stmt.where(Invoice.status == status)
        stmt = stmt.order_by(Invoice.issue_date.desc(), Invoice.invoice_number.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def count_invoices(self) -> int:
        result = await self.execute(select(func.count(Invoice.id)))
        return int(result.scalar_one())

    # Payments
    async def list_payments(
        self,
        *,
        student_id: Optional[UUID] = None,
        academic_year_id: Optional[UUID] = None,
        term_id: Optional[UUID] = None,
        fee_item_id: Optional[UUID] = None,
        payment_method: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[FeePayment]:
        stmt = select(FeePayment)
        if student_id:
            stmt = stmt.where(FeePayment.student_id == student_id)
        if academic_year_id:
            stmt = stmt.where(FeePayment.academic_year_id == academic_year_id)
        if term_id:
            stmt = stmt.where(FeePayment.term_id == term_id)
        if fee_item_id:
            stmt = stmt.where(FeePayment.fee_item_id == fee_item_id)
        if payment_method:
            stmt = stmt.where(FeePayment.payment_method == payment_method)
        if start is not None:
            stmt = stmt.where(FeePayment.payment_date >= start)
        if end is not None:
            stmt = stmt.where(FeePayment.payment_date <= end)
        stmt = stmt.order_by(FeePayment.payment_date.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    # Expenses
    async def list_expenses(
        self,
        *,
        category: Optional[str] = None,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Expense]:
        stmt = select(Expense)
        if category:
            stmt = stmt.where(Expense.category == category)
        if start is not None:
            stmt = stmt.where(Expense.expense_date >= start)
        if end is not None:
            stmt = stmt.where(Expense.expense_date <= end)
        stmt = stmt.order_by(Expense.expense_date.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    # Aggregates
    async def expense_totals_by_category(
        self, *, category: Optional[str] = None, start: Optional[datetime] = None, end: Optional[datetime] = None
    ) -> List[Tuple[Optional[str], Decimal, int]]:
        stmt = select(Expense.category, func.coalesce(func.sum(Expense.amount), 0), func.count(Expense.id))
        if category:
            stmt = stmt.where(Expense.category == category)
        if start is not None:
            stmt = stmt.where(Expense.expense_date >= start)
        if end is not None:
            stmt = stmt.where(Expense.expense_date <= end)
        result = await self.execute(stmt.group_by(Expense.category))
        return [tuple(row) for row in result.all()]

    def _payment_filters(self, stmt, filters: Dict[str, Any]):
        if filters.get("academic_year_id"):
            stmt = stmt.where(FeePayment.academic_year_id == filters["academic_year_id"])
        if filters.get("term_id"):
            stmt = stmt.where(FeePayment.term_id == filters["term_id"])
        if filters.get("fee_item_id"):
            stmt = stmt.where(FeePayment.fee_item_id == filters["fee_item_id"])
        if filters.get("payment_method"):
            stmt = stmt.where(FeePayment.payment_method == filters["payment_method"])
        if filters.get("start") is not None:
            stmt = stmt.where(FeePayment.payment_date >= filters["start"])
        if filters.get("end") is not None:
            stmt = stmt.where(FeePayment.payment_date <= filters["end"])
        return stmt

    async def payment_totals_by_fee_item(self, **filters: Any) -> List[Tuple[UUID, Optional[str], Decimal, int]]:
        stmt = (
            select(
                FeePayment.fee_item_id,
                FeeItem.name,
                func.coalesce(func.sum(FeePayment.amount_paid), 0),
                func.count(FeePayment.id),
            )
            .select_from(FeePayment)
            .outerjoin(FeeItem, FeeItem.id == FeePayment.fee_item_id)
        )
        stmt = self._payment_filters(stmt, filters).group_by(FeePayment.fee_item_id, FeeItem.name)
        result = await self.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def payment_totals_by_method(self, **filters: Any) -> List[Tuple[str, Decimal, int]]:
        stmt = select(
            FeePayment.payment_method,
            func.coalesce(func.sum(FeePayment.amount_paid), 0),
            func.count(FeePayment.id),
        )
        stmt = self._payment_filters(stmt, filters).group_by(FeePayment.payment_method)
        result = await self.execute(stmt)
        return [tuple(row) for row in result.all()]

    async def sum_payments(self, *, start: datetime, end: datetime) -> Decimal:
        stmt = select(func.coalesce(func.sum(FeePayment.amount_paid), 0)).where(
            FeePayment.payment_date >= start, FeePayment.payment_date <= end
        )
        result = await self.execute(stmt)
        return Decimal(result.scalar_one())

    async def sum_expenses(self, *, start: datetime, end: datetime) -> Decimal:
        stmt = select(func.coalesce(func.sum(Expense.amount), 0)).where(
            Expense.expense_date >= start, Expense.expense_date <= end
        )
        result = await self.execute(stmt)
        return Decimal(result.scalar_one())

    async def paid_by_student(self, academic_year_id: UUID, student_ids: Sequence[UUID]) -> Dict[UUID, Decimal]:
        """Total paid per student (user id) in one academic year."""
        if not student_ids:
            return {}
        stmt = (
            select(FeePayment.student_id, func.coalesce(func.sum(FeePayment.amount_paid), 0))
            .where(FeePayment.academic_year_id == academic_year_id, FeePayment.student_id.in_(list(student_ids)))
            .group_by(FeePayment.student_id)
        )
        result = await self.execute(stmt)
        return {student_id: Decimal(total) for student_id, total in result.all()}

    async def create(self, entity: Any) -> Any:
        await self.add(entity)
        await self.flush()
        await self.refresh(entity)
        return entity
