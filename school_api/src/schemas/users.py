from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from src.core.roles import TENANT_ROLES


class UserRead(BaseModel):
    """User read model."""
    id: UUID = Field(..., description="User ID")
    username: str = Field(..., description="Login name (lowercase)")
    email: Optional[str] = Field(None, description="User email")
    role: str = Field(..., description="Role inside the school")
    first_name: str = Field(...)
    last_name: str = Field(...)
    profile_picture_url: Optional[str] = Field(None)
    is_active: bool = Field(..., description="Active flag")
    last_login: Optional[datetime] = Field(None)
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")

    class Config:
        from_attributes = True


class StudentProfileIn(BaseModel):
    """Student profile fields supplied when creating a student user."""
    student_id_number: str = Field(..., min_length=1, description="School-issued admission number")
    admission_date: Optional[date] = Field(None)
    date_of_birth: Optional[date] = Field(None)
    gender: Optional[str] = Field(None, pattern="^(Male|Female|Other)$")
    current_class_id: Optional[UUID] = Field(None)
    current_academic_year_id: Optional[UUID] = Field(None)
    stream: Optional[str] = Field(None)


class TeacherProfileIn(BaseModel):
    """Teacher profile fields supplied when creating a teacher user."""
    teacher_id_number: Optional[str] = Field(None)
    qualifications: List[str] = Field(default_factory=list)
    date_of_joining: Optional[date] = Field(None)
    specialization: Optional[str] = Field(None)


class UserCreate(BaseModel):
    """Admin create user payload."""
    username: str = Field(..., min_length=3, description="Login name; stored lowercase")
    email: Optional[EmailStr] = Field(None, description="Email")
    password: str = Field(..., min_length=6, description="Password")
    role: str = Field(..., description="One of admin, teacher, student, librarian, finance, pharmacy, dormitory_master")
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    profile_picture_url: Optional[str] = Field(None)
    is_active: bool = Field(default=True)
    student: Optional[StudentProfileIn] = Field(None, description="Required when role is 'student'")
    teacher: Optional[TeacherProfileIn] = Field(None, description="Optional profile when role is 'teacher'")

    @field_validator("username")
    @classmethod
    def _lower_username(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("role")
    @classmethod
    def _valid_role(cls, v: str) -> str:
        if v not in TENANT_ROLES:
            raise ValueError(f"role must be one of {', '.join(TENANT_ROLES)}")
        return v


class UserUpdate(BaseModel):
    """Admin update user payload."""
    email: Optional[EmailStr] = Field(None)
    password: Optional[str] = Field(None, min_length=6)
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    profile_picture_url: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)


class StudentRead(BaseModel):
    """Student profile joined with its user."""
    id: UUID = Field(..., description="Student profile ID")
    user_id: UUID = Field(..., description="User ID of the student")
    student_id_number: str = Field(...)
    first_name: str = Field(...)
    last_name: str = Field(...)
    username: str = Field(...)
    email: Optional[str] = Field(None)
    gender: Optional[str] = Field(None)
    date_of_birth: Optional[date] = Field(None)
    admission_date: Optional[date] = Field(None)
    current_class_id: Optional[UUID] = Field(None)
    class_name: Optional[str] = Field(None)
    current_academic_year_id: Optional[UUID] = Field(None)
    academic_year: Optional[str] = Field(None)
    stream: Optional[str] = Field(None)
    is_active: bool = Field(...)


class AssignmentIn(BaseModel):
    """One class/subject/year a teacher teaches."""
    class_id: UUID = Field(...)
    subject_id: UUID = Field(...)
    academic_year_id: UUID = Field(...)


class AssignmentRead(AssignmentIn):
    """Stored teacher assignment."""
    id: UUID = Field(...)
    teacher_id: UUID = Field(...)

    class Config:
        from_attributes = True


class AssignmentsReplace(BaseModel):
    """Full replacement of a teacher's assignment set."""
    assignments: List[AssignmentIn] = Field(default_factory=list)


class PromotionRequest(BaseModel):
    """Move students into a target class (and that class's academic year)."""
    student_ids: List[UUID] = Field(default_factory=list, description="Student profile IDs")
    target_class_id: UUID = Field(..., description="Class to move the students into")


class PromotionResult(BaseModel):
    """Outcome of a promotion."""
    message: str = Field(...)
    promoted: int = Field(..., description="Number of students moved")
    target_class_id: UUID = Field(...)
    academic_year_id: UUID = Field(...)
