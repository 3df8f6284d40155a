from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import TenantBase, UUIDPkMixin, TimestampMixin


class Article(UUIDPkMixin, TimestampMixin, TenantBase):
    """News or blog post on the public school website."""
    __tablename__ = "articles"
    __table_args__ = (
        UniqueConstraint("kind", "slug", name="uq_articles_kind_slug"),
        CheckConstraint("kind IN ('news', 'blog')", name="kind_valid"),
    )

    kind: Mapped[str] = mapped_column(Text, nullable=False)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    slug: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    published_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    featured_image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")


class GalleryItem(UUIDPkMixin, TimestampMixin, TenantBase):
    """Image shown in the website gallery."""
    __tablename__ = "gallery_items"

    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    album: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")


class Event(UUIDPkMixin, TimestampMixin, TenantBase):
    """Calendar event published on the website."""
    __tablename__ = "events"

    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    audience: Mapped[list] = mapped_column(ARRAY(Text), nullable=False, default=list, server_default="{}")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")


class WebsiteSettings(UUIDPkMixin, TimestampMixin, TenantBase):
    """Branding and static copy for the public site. A school keeps a single row."""
    __tablename__ = "website_settings"

    school_name: Mapped[str] = mapped_column(Text, nullable=False)
    tagline: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    primary_color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    social_links: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    nav_links: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    footer_text: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    about_us: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
