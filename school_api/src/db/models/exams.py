from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import TenantBase, UUIDPkMixin, TimestampMixin

EXAM_STATUSES = ("Scheduled", "Ongoing", "Completed", "Grading", "Published", "Cancelled")


class Exam(UUIDPkMixin, TimestampMixin, TenantBase):
    """Examination session (e.g., mid-term) grouping several assessments."""
    __tablename__ = "exams"
    __table_args__ = (
        UniqueConstraint("name", "academic_year_id", "term_id", name="uq_exams_name_year_term"),
        CheckConstraint("weight IS NULL OR (weight >= 0 AND weight <= 100)", name="weight_range"),
        CheckConstraint(
            "status IN (" + ", ".join(f"'{s}'" for s in EXAM_STATUSES) + ")",
            name="status_valid",
        ),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    term_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("terms.id", ondelete="RESTRICT"), nullable=True
    )
    start_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(Text, nullable=False, default="Scheduled", server_default="Scheduled")
    weight: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)


class Assessment(UUIDPkMixin, TimestampMixin, TenantBase):
    """A marked piece of work for one subject and class within an exam."""
    __tablename__ = "assessments"
    __table_args__ = (
        UniqueConstraint(
            "exam_id", "class_id", "subject_id", "assessment_name",
            name="uq_assessments_exam_class_subject_name",
        ),
        CheckConstraint("max_marks > 0", name="max_marks_positive"),
    )

    exam_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("exams.id", ondelete="CASCADE"), nullable=False
    )
    subject_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="RESTRICT"), nullable=False
    )
    class_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="RESTRICT"), nullable=False
    )
    assessment_type: Mapped[str] = mapped_column(Text, nullable=False)
    assessment_name: Mapped[str] = mapped_column(Text, nullable=False)
    max_marks: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    assessment_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    is_graded: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")

    exam: Mapped[Exam] = relationship("Exam", lazy="selectin")


class Mark(UUIDPkMixin, TimestampMixin, TenantBase):
    """Score of one student in one assessment."""
    __tablename__ = "marks"
    __table_args__ = (
        UniqueConstraint("assessment_id", "student_id", name="uq_marks_assessment_student"),
        CheckConstraint("marks_obtained >= 0", name="marks_non_negative"),
    )

    assessment_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("assessments.id", ondelete="CASCADE"), nullable=False
    )
    student_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False
    )
    term_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True
    )
    marks_obtained: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False)
    comments: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
