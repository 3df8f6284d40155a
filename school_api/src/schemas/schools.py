from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator


class SchoolRead(BaseModel):
    """Read model for a school (tenant)."""
    id: UUID = Field(..., description="School ID")
    name: str = Field(..., description="School name")
    school_code: str = Field(..., description="Unique lowercase school code")
    logo_url: Optional[str] = Field(None)
    contact_email: Optional[str] = Field(None)
    contact_phone: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    is_active: bool = Field(..., description="Whether the school accepts requests")
    has_database: bool = Field(False, description="True when a database URL is configured")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")

    class Config:
        from_attributes = True


class SchoolAdminSeed(BaseModel):
    """First administrator created inside a newly provisioned school."""
    username: str = Field(..., min_length=3, description="Admin username")
    password: str = Field(..., min_length=6, description="Admin password")
    email: Optional[EmailStr] = Field(None)
    first_name: str = Field("School", description="First name")
    last_name: str = Field("Administrator", description="Last name")


class SchoolCreate(BaseModel):
    """Create school payload."""
    name: str = Field(..., min_length=1, description="School name")
    school_code: str = Field(..., min_length=1, description="Lowercase letters and digits only")
    database_url: str = Field(..., min_length=1, description="Connection URL of the school's own database")
    logo_url: Optional[str] = Field(None)
    contact_email: Optional[EmailStr] = Field(None)
    contact_phone: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    is_active: bool = Field(True)
    provision: bool = Field(False, description="Create the tenant tables right away")
    admin: Optional[SchoolAdminSeed] = Field(None, description="Seed a first school admin (requires provision)")

    @field_validator("school_code")
    @classmethod
    def _normalize_code(cls, v: str) -> str:
        return v.strip().lower()


class SchoolUpdate(BaseModel):
    """Update school payload; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1)
    database_url: Optional[str] = Field(None, min_length=1)
    logo_url: Optional[str] = Field(None)
    contact_email: Optional[EmailStr] = Field(None)
    contact_phone: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)


class SuperAdminRead(BaseModel):
    """Read model for a super-admin account."""
    id: UUID = Field(..., description="Super-admin ID")
    email: str = Field(..., description="Email")
    name: str = Field(..., description="Display name")
    is_active: bool = Field(...)
    last_login: Optional[datetime] = Field(None)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class SuperAdminCreate(BaseModel):
    """Create super-admin payload."""
    email: EmailStr = Field(..., description="Email")
    name: str = Field(..., min_length=1, description="Display name")
    password: str = Field(..., min_length=8, description="Password")
