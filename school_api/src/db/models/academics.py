from __future__ import annotations

from datetime import date, time
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Text,
    Time,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import TenantBase, UUIDPkMixin, TimestampMixin
from src.db.models.users import User


class AcademicYear(UUIDPkMixin, TimestampMixin, TenantBase):
    """Top-level scheduling period; at most one is active per school."""
    __tablename__ = "academic_years"
    __table_args__ = (
        UniqueConstraint("name", name="uq_academic_years_name"),
        Index("uq_academic_years_single_active", "is_active", unique=True, postgresql_where=text("is_active")),
        CheckConstraint("start_date <= end_date", name="dates_ordered"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


class Term(UUIDPkMixin, TimestampMixin, TenantBase):
    """Subdivision of an academic year; at most one active term per year."""
    __tablename__ = "terms"
    __table_args__ = (
        UniqueConstraint("name", "academic_year_id", name="uq_terms_name_year"),
        Index(
            "uq_terms_single_active_per_year",
            "academic_year_id",
            unique=True,
            postgresql_where=text("is_active"),
        ),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


class SchoolClass(UUIDPkMixin, TimestampMixin, TenantBase):
    """A class (form/grade/stream) offered in one academic year."""
    __tablename__ = "classes"
    __table_args__ = (
        UniqueConstraint("name", "academic_year_id", name="uq_classes_name_year"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    level: Mapped[str] = mapped_column(Text, nullable=False)
    stream: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    class_teacher_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="RESTRICT"), nullable=False
    )
    capacity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)


class Subject(UUIDPkMixin, TimestampMixin, TenantBase):
    """Subject taught in the school."""
    __tablename__ = "subjects"
    __table_args__ = (
        UniqueConstraint("name", name="uq_subjects_name"),
        UniqueConstraint("code", name="uq_subjects_code"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    department: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_elective: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    for_level: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Student(UUIDPkMixin, TimestampMixin, TenantBase):
    """Student profile linked one-to-one with a user of role 'student'."""
    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_students_user_id"),
        UniqueConstraint("student_id_number", name="uq_students_student_id_number"),
        CheckConstraint("gender IS NULL OR gender IN ('Male', 'Female', 'Other')", name="gender_valid"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    student_id_number: Mapped[str] = mapped_column(Text, nullable=False)
    admission_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    date_of_birth: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    current_class_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="SET NULL"), nullable=True
    )
    current_academic_year_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True
    )
    stream: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    user: Mapped[User] = relationship("User", lazy="selectin")
    current_class: Mapped[Optional[SchoolClass]] = relationship("SchoolClass", lazy="selectin")
    current_academic_year: Mapped[Optional[AcademicYear]] = relationship("AcademicYear", lazy="selectin")


class Teacher(UUIDPkMixin, TimestampMixin, TenantBase):
    """Teacher profile linked one-to-one with a user of role 'teacher'."""
    __tablename__ = "teachers"
    __table_args__ = (
        UniqueConstraint("user_id", name="uq_teachers_user_id"),
        UniqueConstraint("teacher_id_number", name="uq_teachers_teacher_id_number"),
    )

    user_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    teacher_id_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    qualifications: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    date_of_joining: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    specialization: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    user: Mapped[User] = relationship("User", lazy="selectin")
    assignments: Mapped[list["TeacherAssignment"]] = relationship(
        "TeacherAssignment",
        back_populates="teacher",
        cascade="all, delete-orphan",
        lazy="selectin",
    )


class TeacherAssignment(UUIDPkMixin, TimestampMixin, TenantBase):
    """A teacher teaching one subject to one class in one academic year."""
    __tablename__ = "teacher_assignments"
    __table_args__ = (
        UniqueConstraint(
            "teacher_id", "class_id", "subject_id", "academic_year_id",
            name="uq_teacher_assignments_teacher_class_subject_year",
        ),
    )

    teacher_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("teachers.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )
    subject_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False
    )

    teacher: Mapped[Teacher] = relationship("Teacher", back_populates="assignments")


class GradingScale(UUIDPkMixin, TimestampMixin, TenantBase):
    """
    Maps percentage scores to grades.

    grades is a JSON list of objects:
      {grade, min_score, max_score, remarks?, gpa?, points?, pass_status?}
    """
    __tablename__ = "grading_scales"
    __table_args__ = (
        UniqueConstraint("name", name="uq_grading_scales_name"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    academic_year_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="SET NULL"), nullable=True
    )
    level: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scale_type: Mapped[str] = mapped_column(Text, nullable=False, default="Standard Percentage")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    grades: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")


class Timetable(UUIDPkMixin, TimestampMixin, TenantBase):
    """Weekly timetable of one class for a year (and optionally a term)."""
    __tablename__ = "timetables"
    __table_args__ = (
        UniqueConstraint("name", "class_id", "academic_year_id", "term_id", name="uq_timetables_name_class_year_term"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )
    term_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("terms.id", ondelete="SET NULL"), nullable=True
    )
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")

    periods: Mapped[list["TimetablePeriod"]] = relationship(
        "TimetablePeriod",
        cascade="all, delete-orphan",
        order_by="TimetablePeriod.start_time",
        lazy="selectin",
    )


class TimetablePeriod(UUIDPkMixin, TenantBase):
    """One lesson slot within a timetable."""
    __tablename__ = "timetable_periods"
    __table_args__ = (
        CheckConstraint("start_time < end_time", name="times_ordered"),
    )

    timetable_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("timetables.id", ondelete="CASCADE"), nullable=False, index=True
    )
    day_of_week: Mapped[str] = mapped_column(Text, nullable=False)
    start_time: Mapped[time] = mapped_column(Time, nullable=False)
    end_time: Mapped[time] = mapped_column(Time, nullable=False)
    subject_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False
    )
    teacher_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class Attendance(UUIDPkMixin, TimestampMixin, TenantBase):
    """Daily attendance mark of a student in a class (optionally per subject)."""
    __tablename__ = "attendance"
    __table_args__ = (
        Index(
            "uq_attendance_student_class_subject_year_date",
            "student_id",
            "class_id",
            text("coalesce(subject_id, '00000000-0000-0000-0000-000000000000'::uuid)"),
            "academic_year_id",
            "date",
            unique=True,
        ),
        CheckConstraint("status IN ('Present', 'Absent', 'Late', 'Excused')", name="status_valid"),
    )

    student_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    class_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("classes.id", ondelete="CASCADE"), nullable=False
    )
    subject_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("subjects.id", ondelete="SET NULL"), nullable=True
    )
    academic_year_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("academic_years.id", ondelete="CASCADE"), nullable=False
    )
    attendance_date: Mapped[date] = mapped_column("date", Date, nullable=False)
    status: Mapped[str] = mapped_column(Text, nullable=False)
    remarks: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    recorded_by_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
