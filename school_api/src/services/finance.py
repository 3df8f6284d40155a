from __future__ import annotations

import logging
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal
from src.core.errors import BadRequestError, NotFoundError
from src.core.roles import STUDENT
from src.core.settings import get_app_settings
from src.db.models.finance import Expense, FeeItem, FeePayment, Invoice, InvoiceItem
from src.repositories.academics import AcademicsRepository
from src.repositories.finance import FinanceRepository
from src.repositories.users import UserRepository
from src.schemas.finance import ExpenseCreate, FeeItemCreate, FeePaymentCreate, InvoiceCreate
from src.services.audit import AuditService
from src.services.base import BaseService
from src.services.finance_reports import fee_item_applies

logger = logging.getLogger(__name__)


def _money(value: float) -> Decimal:
    return Decimal(str(value)).quantize(Decimal("0.01"))


class FinanceService(BaseService):
    """Fee items, invoices, fee payments and expenses."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = FinanceRepository(session)
        self.academics = AcademicsRepository(session)
        self.users = UserRepository(session)
        self.audit = AuditService(session)

    async def _require_year_and_term(self, academic_year_id: UUID, term_id: Optional[UUID]) -> None:
        if await self.academics.get_year(academic_year_id) is None:
            raise NotFoundError("Academic year not found")
        if term_id is not None:
            term = await self.academics.get_term(term_id)
            if term is None or term.academic_year_id != academic_year_id:
                raise BadRequestError("Term does not belong to the academic year")

    # PUBLIC_INTERFACE
    async def create_fee_item(self, payload: FeeItemCreate) -> FeeItem:
        await self._require_year_and_term(payload.academic_year_id, payload.term_id)
        values = payload.model_dump()
        values["amount"] = _money(payload.amount)
        values["currency"] = payload.currency or get_app_settings().DEFAULT_CURRENCY
        item = await self.repo.create(FeeItem(**values))
        await self.session.commit()
        return item

    # PUBLIC_INTERFACE
    async def create_invoice(self, payload: InvoiceCreate, actor: Optional[Principal] = None) -> Invoice:
        """
        Bill a student for the fee items of a year (and term).

        The class defaults to the student's current class. Without explicit
        fee_item_ids the invoice carries every mandatory item of the year/term that
        applies to the class; listed items must belong to the year/term and apply
        to the class. Lines copy the fee item name and amount; the total is their
        sum and the balance/status are derived.

        Raises:
            NotFoundError: unknown student, class, year or fee item.
            BadRequestError: no class, a listed item that does not apply, or nothing to bill.
        """
        student = await self.users.get_student_by_user_id(payload.student_id)
        if student is None:
            raise NotFoundError("Student not found")
        await self._require_year_and_term(payload.academic_year_id, payload.term_id)
        class_id = payload.class_id or student.current_class_id
        if class_id is None:
            raise BadRequestError("Student has no current class; class_id is required")
        school_class = await self.academics.get_class(class_id)
        if school_class is None:
            raise NotFoundError("Class not found")

        if payload.fee_item_ids:
            items = []
            for fee_item_id in dict.fromkeys(payload.fee_item_ids):
                item = await self.repo.get_fee_item(fee_item_id)
                if item is None:
                    raise NotFoundError(f"Fee item {fee_item_id} not found")
                in_period = item.academic_year_id == payload.academic_year_id and (
                    payload.term_id is None or item.term_id == payload.term_id
                )
                if not in_period or not fee_item_applies(item, school_class.level, class_id):
                    raise BadRequestError(f"Fee item '{item.name}' does not apply to this student and period")
                items.append(item)
        else:
            candidates = await self.repo.list_fee_items(
                academic_year_id=payload.academic_year_id, term_id=payload.term_id
            )
            items = [
                item
                for item in candidates
                if item.is_mandatory and fee_item_applies(item, school_class.level, class_id)
            ]
            if not items:
                raise BadRequestError("No applicable mandatory fee items found for this student")

        lines = [InvoiceItem(fee_item_id=item.id, description=item.name, amount=item.amount) for item in items]

        today = datetime.now(timezone.utc).date()
        number = f"INV-{today:%Y%m%d}-{await self.repo.count_invoices() + 1:05d}"
        invoice = Invoice(
            invoice_number=number,
            student_id=payload.student_id,
            academic_year_id=payload.academic_year_id,
            term_id=payload.term_id,
            class_id=class_id,
            total_amount=sum((line.amount for line in lines), Decimal("0")),
            amount_paid=Decimal("0"),
            issue_date=today,
            due_date=payload.due_date,
            notes=payload.notes,
            items=lines,
        )
        invoice.apply_amounts()
        invoice = await self.repo.create(invoice)
        await self.audit.log("CREATE", "Invoice", actor=actor, entity_id=invoice.id, new=invoice)
        await self.session.commit()
        logger.info("Issued invoice %s for %s", invoice.invoice_number, invoice.total_amount)
        return invoice

    # PUBLIC_INTERFACE
    async def create_payment(self, payload: FeePaymentCreate, actor: Principal) -> FeePayment:
        """
        Record a fee payment in one transaction.

        Raises:
            BadRequestError: non-positive amount, non-student payer, or a term outside the year.
            NotFoundError: unknown student, fee item, academic year or invoice.
        """
        if payload.amount_paid <= 0:
            raise BadRequestError("Amount paid must be greater than zero")
        amount = _money(payload.amount_paid)

        user = await self.users.get_user_by_id(payload.student_id)
        if user is None:
            raise NotFoundError("Student not found")
        if user.role != STUDENT:
            raise BadRequestError("Payments can only be recorded for student users")
        if await self.repo.get_fee_item(payload.fee_item_id) is None:
            raise NotFoundError("Fee item not found")
        await self._require_year_and_term(payload.academic_year_id, payload.term_id)

        if payload.invoice_id is not None:
            invoice = await self.repo.get_invoice_for_update(payload.invoice_id)
            if invoice is None:
                raise NotFoundError("Invoice not found")
            invoice.amount_paid = Decimal(invoice.amount_paid or 0) + amount
            invoice.apply_amounts()

        values = payload.model_dump(exclude_none=True)
        values["amount_paid"] = amount
        payment = await self.repo.create(FeePayment(recorded_by_id=actor.tenant_user_id, **values))
        await self.audit.log("CREATE", "FeePayment", actor=actor, entity_id=payment.id, new=payment)
        await self.session.commit()
        logger.info("Recorded %s payment of %s for student %s", payment.payment_method, amount, user.username)
        return payment

    # PUBLIC_INTERFACE
    async def create_expense(self, payload: ExpenseCreate, actor: Principal) -> Expense:
        values = payload.model_dump()
        values["amount"] = _money(payload.amount)
        values["currency"] = payload.currency or get_app_settings().DEFAULT_CURRENCY
        expense = await self.repo.create(Expense(recorded_by_id=actor.tenant_user_id, **values))
        await self.session.commit()
        return expense
