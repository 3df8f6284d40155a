from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class DormitoryRead(BaseModel):
    """Read model for Dormitory."""
    id: UUID = Field(...)
    name: str = Field(...)
    type: str = Field(...)
    capacity: Optional[int] = Field(None)
    warden_id: Optional[UUID] = Field(None)
    notes: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class DormitoryCreate(BaseModel):
    """Create dormitory payload."""
    name: str = Field(..., min_length=1)
    type: str = Field(..., pattern="^(Boys|Girls|Mixed)$")
    capacity: Optional[int] = Field(None, ge=0)
    warden_id: Optional[UUID] = Field(None)
    notes: Optional[str] = Field(None)


class RoomRead(BaseModel):
    """Read model for Room with its occupants."""
    id: UUID = Field(...)
    room_number: str = Field(...)
    dormitory_id: UUID = Field(...)
    capacity: int = Field(...)
    notes: Optional[str] = Field(None)
    occupant_ids: List[UUID] = Field(default_factory=list, description="User IDs allocated to the room")

    class Config:
        from_attributes = True


class RoomCreate(BaseModel):
    """Create room payload."""
    room_number: str = Field(..., min_length=1)
    dormitory_id: UUID = Field(...)
    capacity: int = Field(..., ge=1)
    notes: Optional[str] = Field(None)
    occupant_ids: List[UUID] = Field(default_factory=list)


class RoomUpdate(BaseModel):
    """Update room payload; occupant_ids replaces the whole allocation when given."""
    room_number: Optional[str] = Field(None, min_length=1)
    capacity: Optional[int] = Field(None, ge=1)
    notes: Optional[str] = Field(None)
    occupant_ids: Optional[List[UUID]] = Field(None)


class UnallocatedStudent(BaseModel):
    """Active student without a room."""
    student_id: UUID = Field(..., description="User ID of the student")
    student_id_number: str = Field(...)
    name: str = Field(...)
    gender: Optional[str] = Field(None)
    class_name: Optional[str] = Field(None)
