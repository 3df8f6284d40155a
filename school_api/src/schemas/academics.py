from __future__ import annotations

from datetime import date, datetime, time
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

DAYS_OF_WEEK = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


class AcademicYearRead(BaseModel):
    """Read model for AcademicYear."""
    id: UUID = Field(..., description="Academic year ID")
    name: str = Field(..., description="Name, e.g. 2024-2025")
    start_date: date = Field(...)
    end_date: date = Field(...)
    is_active: bool = Field(..., description="Exactly one year is active at a time")
    created_at: datetime = Field(...)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class AcademicYearCreate(BaseModel):
    """Create academic year payload."""
    name: str = Field(..., min_length=1)
    start_date: date = Field(...)
    end_date: date = Field(...)
    is_active: bool = Field(False)

    @model_validator(mode="after")
    def _dates_ordered(self) -> "AcademicYearCreate":
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class AcademicYearUpdate(BaseModel):
    """Update academic year payload."""
    name: Optional[str] = Field(None, min_length=1)
    start_date: Optional[date] = Field(None)
    end_date: Optional[date] = Field(None)
    is_active: Optional[bool] = Field(None)


class TermRead(BaseModel):
    """Read model for Term."""
    id: UUID = Field(...)
    name: str = Field(...)
    academic_year_id: UUID = Field(...)
    start_date: date = Field(...)
    end_date: date = Field(...)
    is_active: bool = Field(...)

    class Config:
        from_attributes = True


class TermCreate(BaseModel):
    """Create term payload."""
    name: str = Field(..., min_length=1)
    academic_year_id: UUID = Field(...)
    start_date: date = Field(...)
    end_date: date = Field(...)
    is_active: bool = Field(False)


class ClassRead(BaseModel):
    """Read model for a school class."""
    id: UUID = Field(...)
    name: str = Field(...)
    level: str = Field(..., description="Level used for fee and notification targeting, e.g. Form 1")
    stream: Optional[str] = Field(None)
    class_teacher_id: Optional[UUID] = Field(None)
    academic_year_id: UUID = Field(...)
    capacity: Optional[int] = Field(None)

    class Config:
        from_attributes = True


class ClassCreate(BaseModel):
    """Create class payload."""
    name: str = Field(..., min_length=1)
    level: str = Field(..., min_length=1)
    stream: Optional[str] = Field(None)
    class_teacher_id: Optional[UUID] = Field(None)
    academic_year_id: UUID = Field(...)
    capacity: Optional[int] = Field(None, ge=1)


class SubjectRead(BaseModel):
    """Read model for Subject."""
    id: UUID = Field(...)
    name: str = Field(...)
    code: Optional[str] = Field(None)
    department: Optional[str] = Field(None)
    is_elective: bool = Field(...)
    for_level: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class SubjectCreate(BaseModel):
    """Create subject payload."""
    name: str = Field(..., min_length=1)
    code: Optional[str] = Field(None)
    department: Optional[str] = Field(None)
    is_elective: bool = Field(False)
    for_level: Optional[str] = Field(None)


class GradeBand(BaseModel):
    """One band of a grading scale."""
    grade: str = Field(...)
    min_score: float = Field(..., ge=0)
    max_score: float = Field(..., ge=0)
    remarks: Optional[str] = Field(None)
    gpa: Optional[float] = Field(None)
    points: Optional[float] = Field(None)
    pass_status: Optional[str] = Field(None, description="Pass | Fail")


class GradingScaleRead(BaseModel):
    """Read model for GradingScale."""
    id: UUID = Field(...)
    name: str = Field(...)
    academic_year_id: Optional[UUID] = Field(None)
    level: Optional[str] = Field(None)
    scale_type: str = Field(...)
    description: Optional[str] = Field(None)
    grades: List[GradeBand] = Field(default_factory=list)
    is_default: bool = Field(...)

    class Config:
        from_attributes = True


class GradingScaleCreate(BaseModel):
    """Create grading scale payload."""
    name: str = Field(..., min_length=1)
    academic_year_id: Optional[UUID] = Field(None)
    level: Optional[str] = Field(None)
    scale_type: str = Field("Standard Percentage")
    description: Optional[str] = Field(None)
    grades: List[GradeBand] = Field(..., min_length=1)
    is_default: bool = Field(False)


class PeriodIn(BaseModel):
    """One lesson slot of a timetable."""
    day_of_week: str = Field(..., description="Monday..Sunday")
    start_time: time = Field(..., description="HH:MM")
    end_time: time = Field(..., description="HH:MM")
    subject_id: UUID = Field(...)
    teacher_id: UUID = Field(..., description="User ID of the teacher")
    location: Optional[str] = Field(None)

    @model_validator(mode="after")
    def _check(self) -> "PeriodIn":
        if self.day_of_week not in DAYS_OF_WEEK:
            raise ValueError(f"day_of_week must be one of {', '.join(DAYS_OF_WEEK)}")
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class PeriodRead(BaseModel):
    """Stored timetable period."""
    id: UUID = Field(...)
    day_of_week: str = Field(...)
    start_time: time = Field(...)
    end_time: time = Field(...)
    subject_id: UUID = Field(...)
    teacher_id: UUID = Field(...)
    location: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class TimetableCreate(BaseModel):
    """Create timetable payload."""
    name: str = Field(..., min_length=1)
    academic_year_id: UUID = Field(...)
    class_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    description: Optional[str] = Field(None)
    is_active: bool = Field(False)
    periods: List[PeriodIn] = Field(default_factory=list)


class TimetableRead(BaseModel):
    """Read model for Timetable with its periods."""
    id: UUID = Field(...)
    name: str = Field(...)
    academic_year_id: UUID = Field(...)
    class_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    description: Optional[str] = Field(None)
    is_active: bool = Field(...)
    version: int = Field(...)
    periods: List[PeriodRead] = Field(default_factory=list)

    class Config:
        from_attributes = True


class AttendanceEntry(BaseModel):
    """Attendance status for one student."""
    student_id: UUID = Field(..., description="User ID of the student")
    status: str = Field(..., pattern="^(Present|Absent|Late|Excused)$")
    remarks: Optional[str] = Field(None)


class AttendanceSubmit(BaseModel):
    """Attendance of a class for one day (optionally one subject)."""
    class_id: UUID = Field(...)
    academic_year_id: UUID = Field(...)
    subject_id: Optional[UUID] = Field(None)
    attendance_date: date = Field(..., description="Day the attendance is for")
    entries: List[AttendanceEntry] = Field(..., min_length=1)


class AttendanceRead(BaseModel):
    """Stored attendance row."""
    id: UUID = Field(...)
    student_id: UUID = Field(...)
    class_id: UUID = Field(...)
    subject_id: Optional[UUID] = Field(None)
    academic_year_id: UUID = Field(...)
    attendance_date: date = Field(...)
    status: str = Field(...)
    remarks: Optional[str] = Field(None)
    recorded_by_id: Optional[UUID] = Field(None)

    class Config:
        from_attributes = True
