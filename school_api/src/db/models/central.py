from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from src.db.base import CentralBase, UUIDPkMixin, TimestampMixin


class School(UUIDPkMixin, TimestampMixin, CentralBase):
    """A tenant: one school with its own database, addressed by a unique lowercase code."""
    __tablename__ = "schools"
    __table_args__ = (
        UniqueConstraint("school_code", name="uq_schools_school_code"),
    )

    name: Mapped[str] = mapped_column(Text, nullable=False)
    school_code: Mapped[str] = mapped_column(Text, nullable=False)
    database_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    logo_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")

    @property
    def has_database(self) -> bool:
        return bool(self.database_url)


class SuperAdminUser(UUIDPkMixin, TimestampMixin, CentralBase):
    """Platform operator account; not bound to any school."""
    __tablename__ = "superadmin_users"
    __table_args__ = (
        UniqueConstraint("email", name="uq_superadmin_users_email"),
    )

    email: Mapped[str] = mapped_column(Text, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    last_login: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
