from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class BookRead(BaseModel):
    """Read model for Book."""
    id: UUID = Field(...)
    title: str = Field(...)
    author: Optional[str] = Field(None)
    isbn: Optional[str] = Field(None)
    publisher: Optional[str] = Field(None)
    publication_year: Optional[int] = Field(None)
    genre: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    language: Optional[str] = Field(None)
    location_in_library: Optional[str] = Field(None)
    total_copies: int = Field(...)
    available_copies: int = Field(...)

    class Config:
        from_attributes = True


class BookCreate(BaseModel):
    """Create book payload. available_copies defaults to total_copies."""
    title: str = Field(..., min_length=1)
    author: Optional[str] = Field(None)
    isbn: Optional[str] = Field(None)
    publisher: Optional[str] = Field(None)
    publication_year: Optional[int] = Field(None)
    genre: Optional[str] = Field(None)
    description: Optional[str] = Field(None)
    language: Optional[str] = Field(None)
    location_in_library: Optional[str] = Field(None)
    total_copies: int = Field(1, ge=0)
    available_copies: Optional[int] = Field(None, ge=0)

    @model_validator(mode="after")
    def _copies_within_total(self) -> "BookCreate":
        if self.available_copies is not None and self.available_copies > self.total_copies:
            raise ValueError("available_copies cannot exceed total_copies")
        return self


class TransactionAction(BaseModel):
    """
    Borrow or return request.

    borrow: book_id, member_id and due_date are required.
    return: transaction_id is required.
    """
    action: str = Field(..., description="borrow | return")
    book_id: Optional[UUID] = Field(None)
    member_id: Optional[UUID] = Field(None, description="User ID of the borrower")
    due_date: Optional[datetime] = Field(None)
    transaction_id: Optional[UUID] = Field(None)
    notes: Optional[str] = Field(None)


class BookTransactionRead(BaseModel):
    """Read model for BookTransaction."""
    id: UUID = Field(...)
    book_id: UUID = Field(...)
    book_title: Optional[str] = Field(None)
    member_id: UUID = Field(...)
    member_name: Optional[str] = Field(None)
    borrow_date: datetime = Field(...)
    due_date: datetime = Field(...)
    return_date: Optional[datetime] = Field(None)
    is_returned: bool = Field(...)
    notes: Optional[str] = Field(None)
