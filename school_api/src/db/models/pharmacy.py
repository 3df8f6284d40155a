from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import TenantBase, UUIDPkMixin, TimestampMixin

MEDICATION_UNITS = ("tablets", "ml", "bottles", "tubes", "strips")


class Medication(UUIDPkMixin, TimestampMixin, TenantBase):
    """Stocked medication; stock is never negative."""
    __tablename__ = "medications"
    __table_args__ = (
        UniqueConstraint("name", name="uq_medications_name"),
        CheckConstraint("stock >= 0", name="stock_non_negative"),
        CheckConstraint(
            "unit IN (" + ", ".join(f"'{u}'" for u in MEDICATION_UNITS) + ")",
            name="unit_valid",
        ),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    brand: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    unit: Mapped[str] = mapped_column(Text, nullable=False)
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=10, server_default="10")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Visit(UUIDPkMixin, TimestampMixin, TenantBase):
    """A student's visit to the sick bay; open until checked out."""
    __tablename__ = "visits"

    student_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    check_in_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    check_out_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    symptoms: Mapped[str] = mapped_column(Text, nullable=False)
    diagnosis: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    treatment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )


class Dispensation(UUIDPkMixin, TimestampMixin, TenantBase):
    """Medication handed out during a visit."""
    __tablename__ = "dispensations"
    __table_args__ = (
        CheckConstraint("quantity_dispensed >= 1", name="quantity_positive"),
    )

    visit_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("visits.id", ondelete="CASCADE"), nullable=False, index=True
    )
    medication_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("medications.id", ondelete="SET NULL"), nullable=True
    )
    quantity_dispensed: Mapped[int] = mapped_column(Integer, nullable=False)
    dispensation_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    dispensed_by_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    visit: Mapped[Visit] = relationship("Visit", lazy="selectin")


class HealthRecord(UUIDPkMixin, TimestampMixin, TenantBase):
    """Standing medical information for one student."""
    __tablename__ = "health_records"
    __table_args__ = (
        UniqueConstraint("student_id", name="uq_health_records_student_id"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    blood_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    allergies: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    medical_conditions: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    emergency_contact_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact_relationship: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    emergency_contact_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
