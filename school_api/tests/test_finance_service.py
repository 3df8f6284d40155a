"""Unit tests for fee payments and the finance report helpers."""

import re
from datetime import date, datetime, time, timezone
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.core.errors import BadRequestError, NotFoundError
from src.core.roles import FINANCE, STUDENT, TEACHER
from src.core.deps import Principal
from src.db.models.finance import Invoice
from src.schemas.finance import FeePaymentCreate, InvoiceCreate
from src.services.finance import FinanceService
from src.services.finance_reports import FinanceReportService, day_bounds, fee_item_applies


@pytest.fixture
def bursar():
    return Principal(id=str(uuid4()), role=FINANCE, school_code="greenhill")


@pytest.fixture
def service(mock_db):
    svc = FinanceService(mock_db)
    svc.repo = AsyncMock()
    svc.academics = AsyncMock()
    svc.users = AsyncMock()
    svc.audit = AsyncMock()
    svc.users.get_user_by_id.return_value = SimpleNamespace(role=STUDENT, username="amina")
    svc.repo.create.side_effect = lambda obj: obj
    return svc


def _payment(**overrides):
    values = dict(
        student_id=uuid4(),
        fee_item_id=uuid4(),
        academic_year_id=uuid4(),
        amount_paid=150000,
        payment_method="Mobile Money",
    )
    values.update(overrides)
    return FeePaymentCreate(**values)


class TestCreatePayment:
    @pytest.mark.asyncio
    async def test_records_payment(self, service, bursar, mock_db):
        payment = await service.create_payment(_payment(), bursar)

        assert payment.amount_paid == Decimal("150000.00")
        assert payment.recorded_by_id == bursar.tenant_user_id
        service.audit.log.assert_awaited_once()
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5])
    async def test_non_positive_amount(self, service, bursar, amount, mock_db):
        with pytest.raises(BadRequestError):
            await service.create_payment(_payment(amount_paid=amount), bursar)
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_payer_must_be_a_student(self, service, bursar):
        service.users.get_user_by_id.return_value = SimpleNamespace(role=TEACHER, username="mr-k")
        with pytest.raises(BadRequestError):
            await service.create_payment(_payment(), bursar)

    @pytest.mark.asyncio
    async def test_unknown_fee_item(self, service, bursar):
        service.repo.get_fee_item.return_value = None
        with pytest.raises(NotFoundError):
            await service.create_payment(_payment(), bursar)

    @pytest.mark.asyncio
    async def test_term_outside_year(self, service, bursar):
        service.academics.get_term.return_value = SimpleNamespace(academic_year_id=uuid4())
        with pytest.raises(BadRequestError):
            await service.create_payment(_payment(term_id=uuid4()), bursar)

    @pytest.mark.asyncio
    async def test_partial_then_full_payment_updates_invoice(self, service, bursar):
        invoice = Invoice(total_amount=Decimal("300000"), amount_paid=Decimal("0"))
        invoice.apply_amounts()
        assert invoice.status == "Unpaid"
        service.repo.get_invoice_for_update.return_value = invoice

        await service.create_payment(_payment(invoice_id=uuid4(), amount_paid=100000), bursar)
        assert invoice.status == "Partial"
        assert invoice.outstanding_balance == Decimal("200000.00")

        await service.create_payment(_payment(invoice_id=uuid4(), amount_paid=200000), bursar)
        assert invoice.status == "Paid"
        assert invoice.outstanding_balance == Decimal("0.00")
        service.repo.get_invoice.assert_not_awaited()


def _fee_item(name, amount, *, year_id, levels=None, classes=None, mandatory=True, term_id=None):
    return SimpleNamespace(
        id=uuid4(),
        name=name,
        amount=Decimal(amount),
        academic_year_id=year_id,
        term_id=term_id,
        is_mandatory=mandatory,
        applies_to_levels=levels,
        applies_to_classes=classes,
    )


class TestCreateInvoice:
    @pytest.fixture
    def form1(self, service):
        school_class = SimpleNamespace(id=uuid4(), name="Form 1A", level="Form 1")
        service.users.get_student_by_user_id.return_value = SimpleNamespace(current_class_id=school_class.id)
        service.academics.get_class.return_value = school_class
        service.repo.count_invoices.return_value = 41
        return school_class

    def _invoice(self, year_id, **overrides):
        values = dict(student_id=uuid4(), academic_year_id=year_id, due_date=date(2025, 2, 28))
        values.update(overrides)
        return InvoiceCreate(**values)

    @pytest.mark.asyncio
    async def test_bills_applicable_mandatory_items(self, service, form1, mock_db):
        year_id = uuid4()
        service.repo.list_fee_items.return_value = [
            _fee_item("Tuition", "300000", year_id=year_id, levels=["All"]),
            _fee_item("Field trip", "20000", year_id=year_id, mandatory=False),
            _fee_item("KCSE registration", "5000", year_id=year_id, levels=["Form 4"]),
        ]

        invoice = await service.create_invoice(self._invoice(year_id))

        assert re.fullmatch(r"INV-\d{8}-00042", invoice.invoice_number)
        assert invoice.class_id == form1.id
        assert [line.description for line in invoice.items] == ["Tuition"]
        assert invoice.total_amount == Decimal("300000")
        assert invoice.outstanding_balance == Decimal("300000")
        assert invoice.status == "Unpaid"
        service.repo.list_fee_items.assert_awaited_once_with(academic_year_id=year_id, term_id=None)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_nothing_applicable(self, service, form1, mock_db):
        year_id = uuid4()
        service.repo.list_fee_items.return_value = [
            _fee_item("KCSE registration", "5000", year_id=year_id, levels=["Form 4"])
        ]
        with pytest.raises(BadRequestError):
            await service.create_invoice(self._invoice(year_id))
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_listed_item_of_another_year_is_rejected(self, service, form1):
        year_id = uuid4()
        item = _fee_item("Tuition", "300000", year_id=uuid4())
        service.repo.get_fee_item.return_value = item
        with pytest.raises(BadRequestError):
            await service.create_invoice(self._invoice(year_id, fee_item_ids=[item.id]))

    @pytest.mark.asyncio
    async def test_listed_item_for_another_class_is_rejected(self, service, form1):
        year_id = uuid4()
        item = _fee_item("Lab fee", "15000", year_id=year_id, classes=[uuid4()])
        service.repo.get_fee_item.return_value = item
        with pytest.raises(BadRequestError):
            await service.create_invoice(self._invoice(year_id, fee_item_ids=[item.id]))

    @pytest.mark.asyncio
    async def test_listed_optional_item_is_billed_once(self, service, form1):
        year_id = uuid4()
        item = _fee_item("Field trip", "20000", year_id=year_id, mandatory=False)
        service.repo.get_fee_item.return_value = item

        invoice = await service.create_invoice(self._invoice(year_id, fee_item_ids=[item.id, item.id]))

        assert len(invoice.items) == 1
        assert invoice.total_amount == Decimal("20000")
        service.repo.list_fee_items.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_student_without_class(self, service):
        service.users.get_student_by_user_id.return_value = SimpleNamespace(current_class_id=None)
        with pytest.raises(BadRequestError):
            await service.create_invoice(self._invoice(uuid4()))

class TestReportHelpers:
    def test_day_bounds_cover_whole_days(self):
        start, end = day_bounds(date(2025, 1, 1), date(2025, 1, 31))
        assert start == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert end == datetime.combine(date(2025, 1, 31), time.max, tzinfo=timezone.utc)
        assert day_bounds(None, None) == (None, None)

    def test_fee_item_with_no_restrictions_applies_to_everyone(self):
        item = SimpleNamespace(applies_to_levels=None, applies_to_classes=[])
        assert fee_item_applies(item, "Form 1", uuid4())
        assert fee_item_applies(item, None, None)

    def test_fee_item_levels(self):
        assert fee_item_applies(SimpleNamespace(applies_to_levels=["All"], applies_to_classes=None), "Form 4", None)
        item = SimpleNamespace(applies_to_levels=["Form 1", "Form 2"], applies_to_classes=None)
        assert fee_item_applies(item, "Form 2", None)
        assert not fee_item_applies(item, "Form 3", None)
        assert not fee_item_applies(item, None, None)

    def test_fee_item_classes(self):
        class_id = uuid4()
        item = SimpleNamespace(applies_to_levels=None, applies_to_classes=[class_id])
        assert fee_item_applies(item, "Form 1", class_id)
        assert not fee_item_applies(item, "Form 1", uuid4())


class TestReports:
    @pytest.fixture
    def reports(self, mock_db):
        svc = FinanceReportService(mock_db)
        svc.repo = AsyncMock()
        svc.academics = AsyncMock()
        svc.users = AsyncMock()
        return svc

    @pytest.mark.asyncio
    async def test_expense_summary_merges_uncategorized(self, reports):
        reports.repo.expense_totals_by_category.return_value = [
            ("Utilities", Decimal("500"), 2),
            (None, Decimal("20"), 1),
            ("", Decimal("30"), 1),
        ]

        summary = await reports.expense_summary()

        assert summary.total_expenses == 550.0
        assert summary.total_transactions == 4
        assert [b.category for b in summary.breakdown_by_category] == ["Utilities", "Uncategorized"]
        assert summary.breakdown_by_category[1].total_amount == 50.0

    @pytest.mark.asyncio
    async def test_income_statement_requires_ordered_dates(self, reports):
        with pytest.raises(BadRequestError):
            await reports.income_statement(date(2025, 2, 1), date(2025, 1, 1))
        with pytest.raises(BadRequestError):
            await reports.income_statement(None, date(2025, 1, 1))

    @pytest.mark.asyncio
    async def test_income_statement_net(self, reports):
        reports.repo.sum_payments.return_value = Decimal("1000")
        reports.repo.sum_expenses.return_value = Decimal("1250.50")

        statement = await reports.income_statement(date(2025, 1, 1), date(2025, 3, 31))

        assert statement.total_income == 1000.0
        assert statement.net_result == -250.5

    @pytest.mark.asyncio
    async def test_outstanding_balances(self, reports):
        form1 = SimpleNamespace(id=uuid4(), name="Form 1A", level="Form 1")
        student = SimpleNamespace(
            user_id=uuid4(),
            student_id_number="S-001",
            user=SimpleNamespace(full_name="Amina Juma"),
            current_class=form1,
            current_class_id=form1.id,
        )
        reports.users.list_students.return_value = [student]
        reports.repo.list_fee_items.return_value = [
            SimpleNamespace(amount=Decimal("300000"), applies_to_levels=["All"], applies_to_classes=None),
            SimpleNamespace(amount=Decimal("50000"), applies_to_levels=["Form 4"], applies_to_classes=None),
        ]
        reports.repo.paid_by_student.return_value = {student.user_id: Decimal("120000")}

        rows = await reports.outstanding_balances(uuid4())

        assert len(rows) == 1
        assert rows[0].total_due == 300000.0
        assert rows[0].total_paid == 120000.0
        assert rows[0].outstanding == 180000.0
        assert rows[0].class_name == "Form 1A"

    @pytest.mark.asyncio
    async def test_outstanding_balances_unknown_year(self, reports):
        reports.academics.get_year.return_value = None
        with pytest.raises(NotFoundError):
            await reports.outstanding_balances(uuid4())

    @pytest.mark.asyncio
    async def test_fee_collection_summary(self, reports):
        tuition_id = uuid4()
        reports.repo.payment_totals_by_fee_item.return_value = [
            (uuid4(), None, Decimal("1500"), 3),
            (tuition_id, "Tuition", Decimal("9000"), 4),
        ]
        reports.repo.payment_totals_by_method.return_value = [
            ("Cash", Decimal("500"), 2),
            ("Mobile Money", Decimal("10000"), 5),
        ]

        summary = await reports.fee_collection_summary(start_date=date(2025, 1, 1), end_date=date(2025, 1, 31))

        assert summary.total_collected == 10500.0
        assert summary.total_transactions == 7
        assert [r.fee_item_name for r in summary.breakdown_by_fee_item] == ["Tuition", "Unknown Fee Item"]
        assert summary.breakdown_by_fee_item[0].fee_item_id == tuition_id
        assert [r.payment_method for r in summary.breakdown_by_payment_method] == ["Mobile Money", "Cash"]
        filters = reports.repo.payment_totals_by_fee_item.await_args.kwargs
        assert filters["start"] == datetime(2025, 1, 1, tzinfo=timezone.utc)
        assert filters["end"] == datetime.combine(date(2025, 1, 31), time.max, tzinfo=timezone.utc)
