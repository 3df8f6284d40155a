from __future__ import annotations

from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_tenant_session, require_roles
from src.core.roles import ADMIN, FINANCE
from src.repositories.finance import FinanceRepository
from src.schemas.finance import (
    ExpenseCreate,
    ExpenseRead,
    ExpenseSummary,
    FeeCollectionSummary,
    FeeItemCreate,
    FeeItemRead,
    FeePaymentCreate,
    FeePaymentRead,
    IncomeStatement,
    InvoiceCreate,
    InvoiceRead,
    OutstandingBalanceRow,
)
from src.services.finance import FinanceService
from src.services.finance_reports import FinanceReportService, day_bounds

router = APIRouter(prefix="/schools/{school_code}/portal/finance", tags=["Finance"])

_finance_staff = require_roles(ADMIN, FINANCE)


# PUBLIC_INTERFACE
@router.get(
    "/fee-items",
    response_model=List[FeeItemRead],
    summary="List fee items",
    dependencies=[Depends(_finance_staff)],
)
async def list_fee_items(
    session: AsyncSession = Depends(get_tenant_session),
    academic_year_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
) -> List[FeeItemRead]:
    items = await FinanceRepository(session).list_fee_items(academic_year_id=academic_year_id, term_id=term_id)
    return [FeeItemRead.model_validate(i) for i in items]


# PUBLIC_INTERFACE
@router.post(
    "/fee-items",
    response_model=FeeItemRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create fee item",
    dependencies=[Depends(_finance_staff)],
)
async def create_fee_item(payload: FeeItemCreate, session: AsyncSession = Depends(get_tenant_session)) -> FeeItemRead:
    return FeeItemRead.model_validate(await FinanceService(session).create_fee_item(payload))


# PUBLIC_INTERFACE
@router.get(
    "/invoices",
    response_model=List[InvoiceRead],
    summary="List invoices",
    dependencies=[Depends(_finance_staff)],
)
async def list_invoices(
    session: AsyncSession = Depends(get_tenant_session),
    student_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[InvoiceRead]:
    rows = await FinanceRepository(session).list_invoices(
        student_id=student_id, academic_year_id=academic_year_id, status=status_filter, limit=limit, offset=offset
    )
    return [InvoiceRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.get(
    "/invoices/{invoice_id}",
    response_model=InvoiceRead,
    summary="Get invoice",
    dependencies=[Depends(_finance_staff)],
)
async def get_invoice(invoice_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> InvoiceRead:
    invoice = await FinanceRepository(session).get_invoice(invoice_id)
    if invoice is None:
        raise HTTPException(status_code=404, detail="Invoice not found")
    return InvoiceRead.model_validate(invoice)


# PUBLIC_INTERFACE
@router.post(
    "/invoices",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create invoice",
    description=(
        "Bill a student for fee items. Without fee_item_ids every applicable mandatory item of the "
        "year (and term) is billed; the total, balance and status are derived."
    ),
)
async def create_invoice(
    payload: InvoiceCreate,
    principal: Principal = Depends(_finance_staff),
    session: AsyncSession = Depends(get_tenant_session),
) -> InvoiceRead:
    return InvoiceRead.model_validate(await FinanceService(session).create_invoice(payload, actor=principal))


# PUBLIC_INTERFACE
@router.get(
    "/payments",
    response_model=List[FeePaymentRead],
    summary="List fee payments",
    description="Fee payments, newest first.",
    dependencies=[Depends(_finance_staff)],
)
async def list_payments(
    session: AsyncSession = Depends(get_tenant_session),
    student_id: Optional[UUID] = Query(None),
    academic_year_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
    fee_item_id: Optional[UUID] = Query(None),
    payment_method: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[FeePaymentRead]:
    start, end = day_bounds(start_date, end_date)
    rows = await FinanceRepository(session).list_payments(
        student_id=student_id,
        academic_year_id=academic_year_id,
        term_id=term_id,
        fee_item_id=fee_item_id,
        payment_method=payment_method,
        start=start,
        end=end,
        limit=limit,
        offset=offset,
    )
    return [FeePaymentRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/payments",
    response_model=FeePaymentRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record fee payment",
    description="Record a payment; when linked to an invoice its paid amount, balance and status are updated.",
)
async def create_payment(
    payload: FeePaymentCreate,
    principal: Principal = Depends(_finance_staff),
    session: AsyncSession = Depends(get_tenant_session),
) -> FeePaymentRead:
    return FeePaymentRead.model_validate(await FinanceService(session).create_payment(payload, principal))


# PUBLIC_INTERFACE
@router.get(
    "/expenses",
    response_model=List[ExpenseRead],
    summary="List expenses",
    dependencies=[Depends(_finance_staff)],
)
async def list_expenses(
    session: AsyncSession = Depends(get_tenant_session),
    category: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[ExpenseRead]:
    start, end = day_bounds(start_date, end_date)
    rows = await FinanceRepository(session).list_expenses(
        category=category, start=start, end=end, limit=limit, offset=offset
    )
    return [ExpenseRead.model_validate(r) for r in rows]


# PUBLIC_INTERFACE
@router.post(
    "/expenses",
    response_model=ExpenseRead,
    status_code=status.HTTP_201_CREATED,
    summary="Record expense",
)
async def create_expense(
    payload: ExpenseCreate,
    principal: Principal = Depends(_finance_staff),
    session: AsyncSession = Depends(get_tenant_session),
) -> ExpenseRead:
    return ExpenseRead.model_validate(await FinanceService(session).create_expense(payload, principal))


# PUBLIC_INTERFACE
@router.get(
    "/reports/expense-summary",
    response_model=ExpenseSummary,
    summary="Expense summary",
    dependencies=[Depends(_finance_staff)],
)
async def expense_summary(
    session: AsyncSession = Depends(get_tenant_session),
    category: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> ExpenseSummary:
    return await FinanceReportService(session).expense_summary(
        category=category, start_date=start_date, end_date=end_date
    )


# PUBLIC_INTERFACE
@router.get(
    "/reports/fee-collection-summary",
    response_model=FeeCollectionSummary,
    summary="Fee collection summary",
    dependencies=[Depends(_finance_staff)],
)
async def fee_collection_summary(
    session: AsyncSession = Depends(get_tenant_session),
    academic_year_id: Optional[UUID] = Query(None),
    term_id: Optional[UUID] = Query(None),
    fee_item_id: Optional[UUID] = Query(None),
    payment_method: Optional[str] = Query(None),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> FeeCollectionSummary:
    return await FinanceReportService(session).fee_collection_summary(
        academic_year_id=academic_year_id,
        term_id=term_id,
        fee_item_id=fee_item_id,
        payment_method=payment_method,
        start_date=start_date,
        end_date=end_date,
    )


# PUBLIC_INTERFACE
@router.get(
    "/reports/income-statement",
    response_model=IncomeStatement,
    summary="Income statement",
    description="Fee income against expenses between two dates (inclusive).",
    dependencies=[Depends(_finance_staff)],
)
async def income_statement(
    session: AsyncSession = Depends(get_tenant_session),
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
) -> IncomeStatement:
    return await FinanceReportService(session).income_statement(start_date, end_date)


# PUBLIC_INTERFACE
@router.get(
    "/reports/outstanding-balances",
    response_model=List[OutstandingBalanceRow],
    summary="Outstanding balances",
    description="What each active student of the year owes for the fee items that apply to them.",
    dependencies=[Depends(_finance_staff)],
)
async def outstanding_balances(
    academic_year_id: UUID = Query(...),
    class_id: Optional[UUID] = Query(None),
    student_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[OutstandingBalanceRow]:
    return await FinanceReportService(session).outstanding_balances(
        academic_year_id, class_id=class_id, student_id=student_id
    )
