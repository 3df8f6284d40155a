from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Numeric,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import TenantBase, UUIDPkMixin, TimestampMixin

INVOICE_STATUSES = ("Draft", "Unpaid", "Paid", "Partial", "Overdue", "Cancelled")
PAYMENT_METHODS = ("Cash", "Bank Transfer", "Mobile Money", "Cheque", "Online Payment", "Other")


class FeeItem(UUIDPkMixin, TimestampMixin, TenantBase):
    """
    Chargeable fee for an academic year.

    applies_to_levels / applies_to_classes narrow which students owe the fee; empty
    lists (or the level "All") mean everyone.
    """
    __tablename__ = "fee_items"
    __table_args__ = (
        UniqueConstraint("name", "academic_year_id", name="uq_fee_items_name_year"),
        CheckConstraint("amount >= 0", name="amount_non_negative"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="TZS", server_default="TZS")
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    term_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True
    )
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_mandatory: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    applies_to_levels: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    applies_to_classes: Mapped[list] = mapped_column(
        ARRAY(UUID(as_uuid=True)), nullable=False, default=list, server_default="{}"
    )


class Invoice(UUIDPkMixin, TimestampMixin, TenantBase):
    """Bill issued to a student; balance and status follow total and amount paid."""
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("invoice_number", name="uq_invoices_invoice_number"),
        CheckConstraint("total_amount >= 0", name="total_non_negative"),
        CheckConstraint("amount_paid >= 0", name="paid_non_negative"),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in INVOICE_STATUSES) + ")",
            name="status_valid",
        ),
    )

    invoice_number: Mapped[str] = mapped_column(Text, nullable=False)
    student_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    term_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True
    )
    class_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False, default=Decimal("0"), server_default="0")
    outstanding_balance: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    issue_date: Mapped[date] = mapped_column(Date, nullable=False, server_default=text("CURRENT_DATE"))
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="Unpaid", server_default="Unpaid")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[list["InvoiceItem"]] = relationship(
        "InvoiceItem", cascade="all, delete-orphan", lazy="selectin"
    )

    def apply_amounts(self) -> None:
        """Recompute outstanding_balance and status from total_amount and amount_paid."""
        total = Decimal(self.total_amount or 0)
        paid = Decimal(self.amount_paid or 0)
        self.outstanding_balance = total - paid
        if self.outstanding_balance <= 0:
            self.status = "Paid"
        elif paid > 0:
            self.status = "Partial"
        else:
            self.status = "Unpaid"


class InvoiceItem(UUIDPkMixin, TenantBase):
    """Line on an invoice, usually copied from a fee item."""
    __tablename__ = "invoice_items"

    invoice_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True
    )
    fee_item_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("fee_items.id", ondelete="SET NULL"), nullable=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)


class FeePayment(UUIDPkMixin, TimestampMixin, TenantBase):
    """Money received from a student against a fee item (optionally an invoice)."""
    __tablename__ = "fee_payments"
    __table_args__ = (
        CheckConstraint("amount_paid > 0", name="amount_positive"),
        CheckConstraint(
            "payment_method IN (" + ", ".join(f"'{m}'" for m in PAYMENT_METHODS) + ")",
            name="payment_method_valid",
        ),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    fee_item_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("fee_items.id", ondelete="RESTRICT"), nullable=False
    )
    invoice_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True
    )
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    term_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True
    )
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    payment_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    payment_method: Mapped[str] = mapped_column(Text, nullable=False)
    transaction_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )


class Expense(UUIDPkMixin, TimestampMixin, TenantBase):
    """Money spent by the school."""
    __tablename__ = "expenses"
    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
    )

    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency: Mapped[str] = mapped_column(Text, nullable=False, default="TZS", server_default="TZS")
    expense_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    receipt_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
