from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, NotFoundError
from src.repositories.academics import AcademicsRepository
from src.repositories.finance import FinanceRepository
from src.repositories.users import UserRepository
from src.schemas.finance import (
    CategoryBreakdown,
    ExpenseSummary,
    FeeCollectionSummary,
    FeeItemBreakdown,
    IncomeStatement,
    OutstandingBalanceRow,
    PaymentMethodBreakdown,
)
from src.services.base import BaseService

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Uncategorized"
UNKNOWN_FEE_ITEM = "Unknown Fee Item"


# PUBLIC_INTERFACE
def day_bounds(start: Optional[date], end: Optional[date]) -> Tuple[Optional[datetime], Optional[datetime]]:
    """Turn an inclusive date range into UTC datetimes from 00:00:00 of start to 23:59:59.999999 of end."""
    start_dt = datetime.combine(start, time.min, tzinfo=timezone.utc) if start else None
    end_dt = datetime.combine(end, time.max, tzinfo=timezone.utc) if end else None
    return start_dt, end_dt


# PUBLIC_INTERFACE
def fee_item_applies(item: Any, level: Optional[str], class_id: Optional[UUID]) -> bool:
    """
    True when a fee item is owed by a student of the given class level and class.

    Levels match when the item lists none, lists "All", or lists the level. Classes
    match when the item lists none or lists the class.
    """
    levels = list(item.applies_to_levels or [])
    classes = list(item.applies_to_classes or [])
    level_ok = not levels or "All" in levels or (level is not None and level in levels)
    class_ok = not classes or (class_id is not None and class_id in classes)
    return level_ok and class_ok


def _sorted_desc(rows: Iterable[Any]) -> List[Any]:
    return sorted(rows, key=lambda r: r.total_amount, reverse=True)


class FinanceReportService(BaseService):
    """Aggregated finance reports: expenses, fee collection, income statement and balances."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = FinanceRepository(session)
        self.academics = AcademicsRepository(session)
        self.users = UserRepository(session)

    # PUBLIC_INTERFACE
    async def expense_summary(
        self, *, category: Optional[str] = None, start_date: Optional[date] = None, end_date: Optional[date] = None
    ) -> ExpenseSummary:
        start, end = day_bounds(start_date, end_date)
        rows = await self.repo.expense_totals_by_category(category=category, start=start, end=end)
        merged: dict = {}
        for cat, total, count in rows:
            key = cat or UNCATEGORIZED
            amount, n = merged.get(key, (Decimal("0"), 0))
            merged[key] = (amount + Decimal(total), n + int(count))
        breakdown = _sorted_desc(
            CategoryBreakdown(category=key, total_amount=float(amount), count=n) for key, (amount, n) in merged.items()
        )
        return ExpenseSummary(
            total_expenses=float(sum((a for a, _ in merged.values()), Decimal("0"))),
            total_transactions=sum(n for _, n in merged.values()),
            breakdown_by_category=breakdown,
        )

    # PUBLIC_INTERFACE
    async def fee_collection_summary(
        self,
        *,
        academic_year_id: Optional[UUID] = None,
        term_id: Optional[UUID] = None,
        fee_item_id: Optional[UUID] = None,
        payment_method: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> FeeCollectionSummary:
        start, end = day_bounds(start_date, end_date)
        filters = dict(
            academic_year_id=academic_year_id,
            term_id=term_id,
            fee_item_id=fee_item_id,
            payment_method=payment_method,
            start=start,
            end=end,
        )
        by_item = await self.repo.payment_totals_by_fee_item(**filters)
        by_method = await self.repo.payment_totals_by_method(**filters)
        item_rows = _sorted_desc(
            FeeItemBreakdown(
                fee_item_id=item_id,
                fee_item_name=name or UNKNOWN_FEE_ITEM,
                total_amount=float(total),
                count=int(count),
            )
            for item_id, name, total, count in by_item
        )
        method_rows = _sorted_desc(
            PaymentMethodBreakdown(payment_method=method, total_amount=float(total), count=int(count))
            for method, total, count in by_method
        )
        return FeeCollectionSummary(
            total_collected=float(sum((Decimal(r[2]) for r in by_item), Decimal("0"))),
            total_transactions=sum(int(r[3]) for r in by_item),
            breakdown_by_fee_item=item_rows,
            breakdown_by_payment_method=method_rows,
        )

    # PUBLIC_INTERFACE
    async def income_statement(self, start_date: Optional[date], end_date: Optional[date]) -> IncomeStatement:
        """Fee income against expenses over an inclusive date range."""
        if start_date is None or end_date is None:
            raise BadRequestError("start_date and end_date are required")
        if start_date > end_date:
            raise BadRequestError("start_date must not be after end_date")
        start, end = day_bounds(start_date, end_date)
        income = await self.repo.sum_payments(start=start, end=end)
        expenses = await self.repo.sum_expenses(start=start, end=end)
        return IncomeStatement(
            start_date=start_date,
            end_date=end_date,
            total_income=float(income),
            total_expenses=float(expenses),
            net_result=float(income - expenses),
        )

    # PUBLIC_INTERFACE
    async def outstanding_balances(
        self,
        academic_year_id: UUID,
        *,
        class_id: Optional[UUID] = None,
        student_id: Optional[UUID] = None,
    ) -> List[OutstandingBalanceRow]:
        """
        What each active student of a year owes.

        total_due sums the year's fee items that apply to the student's class level
        and class; total_paid sums the student's payments in the year.
        """
        if await self.academics.get_year(academic_year_id) is None:
            raise NotFoundError("Academic year not found")
        students = await self.users.list_students(
            class_id=class_id, academic_year_id=academic_year_id, is_active=True, limit=None
        )
        if student_id is not None:
            students = [s for s in students if s.user_id == student_id]
        fee_items = await self.repo.list_fee_items(academic_year_id=academic_year_id)
        paid = await self.repo.paid_by_student(academic_year_id, [s.user_id for s in students])

        rows: List[OutstandingBalanceRow] = []
        for student in students:
            school_class = student.current_class
            level = school_class.level if school_class else None
            due = sum(
                (Decimal(item.amount) for item in fee_items if fee_item_applies(item, level, student.current_class_id)),
                Decimal("0"),
            )
            total_paid = paid.get(student.user_id, Decimal("0"))
            rows.append(
                OutstandingBalanceRow(
                    student_id=student.user_id,
                    student_id_number=student.student_id_number,
                    student_name=student.user.full_name,
                    class_id=student.current_class_id,
                    class_name=school_class.name if school_class else None,
                    total_due=float(due),
                    total_paid=float(total_paid),
                    outstanding=float(due - total_paid),
                )
            )
        rows.sort(key=lambda r: r.student_name.lower())
        logger.info("Computed outstanding balances for %d students", len(rows))
        return rows
