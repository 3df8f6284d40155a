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
    text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.db.base import TenantBase, UUIDPkMixin, TimestampMixin
from src.db.models.users import User


class Book(UUIDPkMixin, TimestampMixin, TenantBase):
    """Library title with copy counts."""
    __tablename__ = "books"
    __table_args__ = (
        UniqueConstraint("isbn", name="uq_books_isbn"),
        CheckConstraint("total_copies >= 0", name="total_non_negative"),
        CheckConstraint(
            "available_copies >= 0 AND available_copies <= total_copies",
            name="available_within_total",
        ),
    )

    title: Mapped[str] = mapped_column(Text, nullable=False)
    author: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    isbn: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    publisher: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    publication_year: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    genre: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    language: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    location_in_library: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    available_copies: Mapped[int] = mapped_column(Integer, nullable=False, default=1, server_default="1")
    added_by_id: Mapped[Optional[UUID]] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )


class BookTransaction(UUIDPkMixin, TimestampMixin, TenantBase):
    """Borrowing of one copy of a book by a member (any user)."""
    __tablename__ = "book_transactions"

    book_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("books.id", ondelete="CASCADE"), nullable=False, index=True
    )
    member_id: Mapped[UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    borrow_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("now()")
    )
    due_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    return_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    is_returned: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default="false")
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    book: Mapped[Book] = relationship("Book", lazy="selectin")
    member: Mapped[User] = relationship("User", lazy="selectin")
