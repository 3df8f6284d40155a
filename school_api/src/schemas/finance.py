from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

_PAYMENT_METHOD_PATTERN = "^(Cash|Bank Transfer|Mobile Money|Cheque|Online Payment|Other)$"


class FeeItemRead(BaseModel):
    """Read model for FeeItem."""
    id: UUID = Field(...)
    name: str = Field(...)
    description: Optional[str] = Field(None)
    amount: float = Field(...)
    currency: str = Field(...)
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    category: Optional[str] = Field(None)
    is_mandatory: bool = Field(...)
    applies_to_levels: List[str] = Field(default_factory=list)
    applies_to_classes: List[UUID] = Field(default_factory=list)

    class Config:
        from_attributes = True


class FeeItemCreate(BaseModel):
    """Create fee item payload."""
    name: str = Field(..., min_length=1)
    description: Optional[str] = Field(None)
    amount: float = Field(..., ge=0)
    currency: Optional[str] = Field(None, description="Defaults to the configured school currency")
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    category: Optional[str] = Field(None)
    is_mandatory: bool = Field(True)
    applies_to_levels: List[str] = Field(default_factory=list, description="Empty or 'All' means every level")
    applies_to_classes: List[UUID] = Field(default_factory=list, description="Empty means every class")


class InvoiceItemRead(BaseModel):
    """Invoice line."""
    id: UUID = Field(...)
    fee_item_id: Optional[UUID] = Field(None)
    description: str = Field(...)
    amount: float = Field(...)

    class Config:
        from_attributes = True


class InvoiceRead(BaseModel):
    """Read model for Invoice."""
    id: UUID = Field(...)
    invoice_number: str = Field(...)
    student_id: UUID = Field(...)
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    class_id: UUID = Field(...)
    items: List[InvoiceItemRead] = Field(default_factory=list)
    total_amount: float = Field(...)
    amount_paid: float = Field(...)
    outstanding_balance: float = Field(...)
    issue_date: date = Field(...)
    due_date: date = Field(...)
    status: str = Field(...)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class InvoiceCreate(BaseModel):
    """Create an invoice for a student from fee items."""
    student_id: UUID = Field(..., description="User ID of the student")
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    class_id: Optional[UUID] = Field(None, description="Defaults to the student's current class")
    fee_item_ids: List[UUID] = Field(
        default_factory=list, description="Explicit fee items; empty bills every applicable mandatory item"
    )
    due_date: date = Field(...)
    notes: Optional[str] = Field(None)


class FeePaymentRead(BaseModel):
    """Read model for FeePayment."""
    id: UUID = Field(...)
    student_id: UUID = Field(...)
    fee_item_id: UUID = Field(...)
    invoice_id: Optional[UUID] = Field(None)
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    amount_paid: float = Field(...)
    payment_date: datetime = Field(...)
    payment_method: str = Field(...)
    transaction_reference: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    recorded_by_id: Optional[UUID] = Field(None)

    class Config:
        from_attributes = True


class FeePaymentCreate(BaseModel):
    """Record a fee payment."""
    student_id: UUID = Field(..., description="User ID of the student")
    fee_item_id: UUID = Field(...)
    invoice_id: Optional[UUID] = Field(None)
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    amount_paid: float = Field(..., description="Must be greater than zero")
    payment_date: Optional[datetime] = Field(None, description="Defaults to now")
    payment_method: str = Field(..., pattern=_PAYMENT_METHOD_PATTERN)
    transaction_reference: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)


class ExpenseRead(BaseModel):
    """Read model for Expense."""
    id: UUID = Field(...)
    category: Optional[str] = Field(None)
    description: str = Field(...)
    amount: float = Field(...)
    currency: str = Field(...)
    expense_date: datetime = Field(...)
    receipt_url: Optional[str] = Field(None)
    recorded_by_id: Optional[UUID] = Field(None)

    class Config:
        from_attributes = True


class ExpenseCreate(BaseModel):
    """Record an expense."""
    category: Optional[str] = Field(None)
    description: str = Field(..., min_length=1)
    amount: float = Field(..., ge=0)
    currency: Optional[str] = Field(None)
    expense_date: datetime = Field(...)
    receipt_url: Optional[str] = Field(None)


class CategoryBreakdown(BaseModel):
    category: str
    total_amount: float
    count: int


class ExpenseSummary(BaseModel):
    """Expense totals with a per-category breakdown."""
    total_expenses: float
    total_transactions: int
    breakdown_by_category: List[CategoryBreakdown] = Field(default_factory=list)


class FeeItemBreakdown(BaseModel):
    fee_item_id: Optional[UUID] = None
    fee_item_name: str
    total_amount: float
    count: int


class PaymentMethodBreakdown(BaseModel):
    payment_method: str
    total_amount: float
    count: int


class FeeCollectionSummary(BaseModel):
    """Collected fees with breakdowns per fee item and payment method."""
    total_collected: float
    total_transactions: int
    breakdown_by_fee_item: List[FeeItemBreakdown] = Field(default_factory=list)
    breakdown_by_payment_method: List[PaymentMethodBreakdown] = Field(default_factory=list)


class IncomeStatement(BaseModel):
    """Income against expenses over a period."""
    start_date: date
    end_date: date
    total_income: float
    total_expenses: float
    net_result: float


class OutstandingBalanceRow(BaseModel):
    """Amount one student owes for a year."""
    student_id: UUID = Field(..., description="User ID of the student")
    student_id_number: str
    student_name: str
    class_id: Optional[UUID] = None
    class_name: Optional[str] = None
    total_due: float
    total_paid: float
    outstanding: float
