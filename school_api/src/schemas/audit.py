from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class AuditLogRead(BaseModel):
    """Read model for an audit log entry."""
    id: UUID = Field(...)
    user_id: Optional[UUID] = Field(None)
    username: Optional[str] = Field(None)
    action: str = Field(...)
    entity: str = Field(...)
    entity_id: Optional[str] = Field(None)
    details: Optional[str] = Field(None)
    original_values: Optional[dict] = Field(None)
    new_values: Optional[dict] = Field(None)
    ip_address: Optional[str] = Field(None)
    user_agent: Optional[str] = Field(None)
    timestamp: datetime = Field(...)

    class Config:
        from_attributes = True
