from __future__ import annotations

from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy import or_, select

from src.db.models.library import Book, BookTransaction
from .base import BaseRepository


class LibraryRepository(BaseRepository):
    """Repository for books and borrow/return transactions."""

    async def get_book(self, book_id: UUID) -> Optional[Book]:
        return await self.get(Book, book_id)

    async def get_book_for_update(self, book_id: UUID) -> Optional[Book]:
        """Load a book with a row lock so concurrent borrows cannot oversell copies."""
        stmt = select(Book).where(Book.id == book_id).with_for_update()
        return await self.scalar_one_or_none(stmt)

    async def list_books(
        self, *, search: Optional[str] = None, limit: int = 100, offset: int = 0
    ) -> List[Book]:
        stmt = select(Book)
        if search:
            pattern = f"%{search}%"
            stmt = stmt.where(or_(Book.title.ilike(pattern), Book.author.ilike(pattern), Book.isbn.ilike(pattern)))
        stmt = stmt.order_by(Book.title).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_transaction(self, transaction_id: UUID) -> Optional[BookTransaction]:
        return await self.get(BookTransaction, transaction_id)

    async def find_open_loan(self, book_id: UUID, member_id: UUID) -> Optional[BookTransaction]:
        stmt = select(BookTransaction).where(
            BookTransaction.book_id == book_id,
            BookTransaction.member_id == member_id,
            BookTransaction.is_returned.is_(False),
        ).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def list_transactions(
        self,
        *,
        member_id: Optional[UUID] = None,
        book_id: Optional[UUID] = None,
        is_returned: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[BookTransaction]:
        stmt = select(BookTransaction)
        if member_id:
            stmt = stmt.where(BookTransaction.member_id == member_id)
        if book_id:
            stmt = stmt.where(BookTransaction.book_id == book_id)
        if is_returned is not None:
            stmt = stmt.where(BookTransaction.is_returned == is_returned)
        stmt = stmt.order_by(BookTransaction.borrow_date.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def create(self, entity: Any) -> Any:
        await self.add(entity)
        await self.flush()
        await self.refresh(entity)
        return entity
