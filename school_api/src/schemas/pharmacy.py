from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MedicationRead(BaseModel):
    """Read model for Medication."""
    id: UUID = Field(...)
    name: str = Field(...)
    brand: Optional[str] = Field(None)
    unit: str = Field(...)
    stock: int = Field(...)
    low_stock_threshold: int = Field(...)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class MedicationCreate(BaseModel):
    """Create medication payload."""
    name: str = Field(..., min_length=1)
    brand: Optional[str] = Field(None)
    unit: str = Field(..., pattern="^(tablets|ml|bottles|tubes|strips)$")
    stock: int = Field(0, ge=0)
    low_stock_threshold: int = Field(10, ge=0)
    notes: Optional[str] = Field(None)


class VisitRead(BaseModel):
    """Read model for a sick-bay visit."""
    id: UUID = Field(...)
    student_id: UUID = Field(...)
    check_in_time: datetime = Field(...)
    check_out_time: Optional[datetime] = Field(None)
    symptoms: str = Field(...)
    diagnosis: Optional[str] = Field(None)
    treatment: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)
    recorded_by_id: Optional[UUID] = Field(None)

    class Config:
        from_attributes = True


class VisitCreate(BaseModel):
    """Open a visit."""
    student_id: UUID = Field(..., description="User ID of the student")
    symptoms: str = Field(..., min_length=1)
    diagnosis: Optional[str] = Field(None)
    treatment: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)


class VisitCheckOut(BaseModel):
    """Close a visit, optionally recording the outcome."""
    diagnosis: Optional[str] = Field(None)
    treatment: Optional[str] = Field(None)
    notes: Optional[str] = Field(None)


class DispensationRead(BaseModel):
    """Read model for Dispensation."""
    id: UUID = Field(...)
    visit_id: UUID = Field(...)
    medication_id: Optional[UUID] = Field(None)
    quantity_dispensed: int = Field(...)
    dispensation_date: datetime = Field(...)
    dispensed_by_id: Optional[UUID] = Field(None)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class DispensationCreate(BaseModel):
    """Dispense medication during an open visit."""
    visit_id: UUID = Field(...)
    medication_id: UUID = Field(...)
    quantity_dispensed: int = Field(..., ge=1)
    notes: Optional[str] = Field(None)


class HealthRecordRead(BaseModel):
    """Read model for HealthRecord."""
    id: UUID = Field(...)
    student_id: UUID = Field(...)
    blood_type: Optional[str] = Field(None)
    allergies: List[str] = Field(default_factory=list)
    medical_conditions: List[str] = Field(default_factory=list)
    emergency_contact_name: Optional[str] = Field(None)
    emergency_contact_relationship: Optional[str] = Field(None)
    emergency_contact_phone: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class HealthRecordUpsert(BaseModel):
    """Create or replace a student's health record."""
    blood_type: Optional[str] = Field(None)
    allergies: List[str] = Field(default_factory=list)
    medical_conditions: List[str] = Field(default_factory=list)
    emergency_contact_name: Optional[str] = Field(None)
    emergency_contact_relationship: Optional[str] = Field(None)
    emergency_contact_phone: Optional[str] = Field(None)
