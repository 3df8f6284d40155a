from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class NotificationRead(BaseModel):
    """Read model for Notification."""
    id: UUID = Field(...)
    user_id: UUID = Field(...)
    title: str = Field(...)
    message: str = Field(...)
    type: str = Field(...)
    link: Optional[str] = Field(None)
    is_read: bool = Field(...)
    created_at: datetime = Field(...)

    class Config:
        from_attributes = True


class ClassBroadcast(BaseModel):
    """Notify the active students of a class level, or all of them when no level is given."""
    title: str = Field(..., min_length=1)
    message: str = Field(..., min_length=1)
    type: str = Field("announcement", pattern="^(info|success|warning|error|announcement)$")
    link: Optional[str] = Field(None)
    level: Optional[str] = Field(None, description="Class level, e.g. Form 2")


class BroadcastResult(BaseModel):
    """Outcome of a broadcast."""
    message: str = Field(...)
    notified: int = Field(..., description="Notifications created")
