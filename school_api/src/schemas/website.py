from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class NavLink(BaseModel):
    label: str
    slug: str
    order: int = 0


class WebsiteSettingsRead(BaseModel):
    """Public branding and static copy of a school website."""
    school_name: str = Field(...)
    tagline: Optional[str] = Field(None)
    logo_url: Optional[str] = Field(None)
    primary_color: Optional[str] = Field(None)
    contact_email: Optional[str] = Field(None)
    contact_phone: Optional[str] = Field(None)
    address: Optional[str] = Field(None)
    social_links: Dict[str, Any] = Field(default_factory=dict)
    nav_links: List[NavLink] = Field(default_factory=list)
    footer_text: Optional[str] = Field(None)
    about_us: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class ArticleRead(BaseModel):
    """News or blog article."""
    id: UUID = Field(...)
    kind: str = Field(...)
    title: str = Field(...)
    slug: str = Field(...)
    content: str = Field(...)
    summary: Optional[str] = Field(None)
    author_id: Optional[UUID] = Field(None)
    published_date: Optional[datetime] = Field(None)
    featured_image_url: Optional[str] = Field(None)
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = Field(None)
    is_active: bool = Field(...)
    view_count: int = Field(...)

    class Config:
        from_attributes = True


class ArticleCreate(BaseModel):
    """Create article payload; the kind comes from the path."""
    title: str = Field(..., min_length=1)
    slug: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1)
    summary: Optional[str] = Field(None)
    published_date: Optional[datetime] = Field(None)
    featured_image_url: Optional[str] = Field(None)
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = Field(None)
    is_active: bool = Field(True)

    @field_validator("slug")
    @classmethod
    def _lower_slug(cls, v: str) -> str:
        return v.strip().lower()


class ArticleUpdate(BaseModel):
    """Update article payload."""
    title: Optional[str] = Field(None, min_length=1)
    slug: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = Field(None, min_length=1)
    summary: Optional[str] = Field(None)
    published_date: Optional[datetime] = Field(None)
    featured_image_url: Optional[str] = Field(None)
    tags: Optional[List[str]] = Field(None)
    category: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)

    @field_validator("slug")
    @classmethod
    def _lower_slug(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().lower() if v is not None else v


class GalleryItemRead(BaseModel):
    """Gallery image."""
    id: UUID = Field(...)
    title: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    image_url: str = Field(...)
    album: Optional[str] = Field(None)
    tags: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True


class EventRead(BaseModel):
    """Upcoming event."""
    id: UUID = Field(...)
    title: str = Field(...)
    description: Optional[str] = Field(None)
    start_date: datetime = Field(...)
    end_date: Optional[datetime] = Field(None)
    location: Optional[str] = Field(None)
    category: Optional[str] = Field(None)
    audience: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
