from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ExamRead(BaseModel):
    """Read model for Exam."""
    id: UUID = Field(...)
    name: str = Field(...)
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    start_date: Optional[date] = Field(None)
    end_date: Optional[date] = Field(None)
    description: Optional[str] = Field(None)
    status: str = Field(...)
    weight: Optional[float] = Field(None)

    class Config:
        from_attributes = True


class ExamCreate(BaseModel):
    """Create exam payload."""
    name: str = Field(..., min_length=1)
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    start_date: Optional[date] = Field(None)
    end_date: Optional[date] = Field(None)
    description: Optional[str] = Field(None)
    status: str = Field("Scheduled", pattern="^(Scheduled|Ongoing|Completed|Grading|Published|Cancelled)$")
    weight: Optional[float] = Field(None, ge=0, le=100, description="Contribution to the final result, 0..100")


class AssessmentRead(BaseModel):
    """Read model for Assessment."""
    id: UUID = Field(...)
    exam_id: UUID = Field(...)
    subject_id: UUID = Field(...)
    class_id: UUID = Field(...)
    assessment_type: str = Field(...)
    assessment_name: str = Field(...)
    max_marks: float = Field(...)
    assessment_date: Optional[date] = Field(None)
    is_graded: bool = Field(...)

    class Config:
        from_attributes = True


class AssessmentCreate(BaseModel):
    """Create assessment payload; the exam comes from the path."""
    subject_id: UUID = Field(...)
    class_id: UUID = Field(...)
    assessment_type: str = Field(..., min_length=1, description="e.g. Exam, Quiz, Assignment")
    assessment_name: str = Field(..., min_length=1)
    max_marks: float = Field(..., gt=0)
    assessment_date: Optional[date] = Field(None)


class MarkEntry(BaseModel):
    """Mark of one student; a null mark clears an existing one."""
    student_id: UUID = Field(..., description="User ID of the student")
    marks_obtained: Optional[float] = Field(None)
    comments: Optional[str] = Field(None)


class MarksBatch(BaseModel):
    """Batch of marks for a single assessment."""
    assessment_id: UUID = Field(...)
    marks: List[MarkEntry] = Field(default_factory=list)


class SkippedMark(BaseModel):
    """Entry left out of a marks batch and why."""
    student_id: UUID = Field(...)
    reason: str = Field(...)


class MarksBatchResult(BaseModel):
    """Outcome of a marks batch."""
    message: str = Field(...)
    processed: int = Field(..., description="Rows inserted, updated or cleared")
    skipped: List[SkippedMark] = Field(default_factory=list)


class MarkRead(BaseModel):
    """Stored mark."""
    id: UUID = Field(...)
    assessment_id: UUID = Field(...)
    student_id: UUID = Field(...)
    academic_year_id: UUID = Field(...)
    term_id: Optional[UUID] = Field(None)
    marks_obtained: float = Field(...)
    comments: Optional[str] = Field(None)
    recorded_by_id: Optional[UUID] = Field(None)
    updated_at: datetime = Field(...)

    class Config:
        from_attributes = True


class ClassTermReportRow(BaseModel):
    """One student's totals, percentage and grade in a class term report."""
    student_id: UUID = Field(..., description="User ID of the student")
    student_profile_id: UUID = Field(...)
    student_id_number: str = Field(...)
    student_name: str = Field(...)
    total_marks_obtained: float = Field(...)
    total_max_marks: float = Field(...)
    percentage: Optional[float] = Field(None)
    grade: str = Field(...)
    remarks: str = Field(...)


class ClassTermReport(BaseModel):
    """Class term report."""
    class_id: UUID = Field(...)
    class_name: str = Field(...)
    academic_year_id: UUID = Field(...)
    grading_scale: Optional[str] = Field(None, description="Name of the scale used, if any")
    rows: List[ClassTermReportRow] = Field(default_factory=list)
