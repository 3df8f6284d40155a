from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import BadRequestError, NotFoundError
from src.db.models.library import Book, BookTransaction
from src.db.models.users import User
from src.repositories.library import LibraryRepository
from src.repositories.users import UserRepository
from src.schemas.library import BookCreate, BookTransactionRead, TransactionAction
from src.services.base import BaseService

logger = logging.getLogger(__name__)


def transaction_to_read(
    tx: BookTransaction, book: Optional[Book] = None, member: Optional[User] = None
) -> BookTransactionRead:
    book = book or tx.book
    member = member or tx.member
    return BookTransactionRead(
        id=tx.id,
        book_id=tx.book_id,
        book_title=book.title if book else None,
        member_id=tx.member_id,
        member_name=member.full_name if member else None,
        borrow_date=tx.borrow_date,
        due_date=tx.due_date,
        return_date=tx.return_date,
        is_returned=tx.is_returned,
        notes=tx.notes,
    )


class LibraryService(BaseService):
    """Book catalogue and circulation."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = LibraryRepository(session)
        self.users = UserRepository(session)

    # PUBLIC_INTERFACE
    async def create_book(self, payload: BookCreate, added_by_id: Optional[UUID] = None) -> Book:
        values = payload.model_dump()
        if values.get("available_copies") is None:
            values["available_copies"] = payload.total_copies
        book = await self.repo.create(Book(added_by_id=added_by_id, **values))
        await self.session.commit()
        return book

    # PUBLIC_INTERFACE
    async def list_transactions(
        self,
        *,
        member_id: Optional[UUID] = None,
        book_id: Optional[UUID] = None,
        is_returned: Optional[bool] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[BookTransactionRead]:
        rows = await self.repo.list_transactions(
            member_id=member_id, book_id=book_id, is_returned=is_returned, limit=limit, offset=offset
        )
        return [transaction_to_read(tx) for tx in rows]

    # PUBLIC_INTERFACE
    async def handle(self, payload: TransactionAction) -> BookTransactionRead:
        """Dispatch a borrow or return request."""
        if payload.action == "borrow":
            return await self.borrow(payload)
        if payload.action == "return":
            return await self.return_book(payload)
        raise BadRequestError("Invalid action. Must be 'borrow' or 'return'")

    # PUBLIC_INTERFACE
    async def borrow(self, payload: TransactionAction) -> BookTransactionRead:
        """
        Lend one copy of a book.

        Raises:
            BadRequestError: missing fields, no copies left, or member already holds the book.
            NotFoundError: unknown book or member.
        """
        if payload.book_id is None or payload.member_id is None or payload.due_date is None:
            raise BadRequestError("book_id, member_id and due_date are required to borrow")
        book = await self.repo.get_book_for_update(payload.book_id)
        if book is None:
            raise NotFoundError("Book not found")
        if book.available_copies <= 0:
            raise BadRequestError("No copies of this book are currently available")
        member = await self.users.get_user_by_id(payload.member_id)
        if member is None:
            raise NotFoundError("Member not found")
        if await self.repo.find_open_loan(book.id, member.id) is not None:
            raise BadRequestError("Member already has an unreturned copy of this book")

        book.available_copies -= 1
        tx = await self.repo.create(
            BookTransaction(
                book_id=book.id,
                member_id=member.id,
                borrow_date=datetime.now(timezone.utc),
                due_date=payload.due_date,
                is_returned=False,
                notes=payload.notes,
            )
        )
        read = transaction_to_read(tx, book, member)
        await self.session.commit()
        logger.info("Book %s borrowed by %s", book.title, member.username)
        return read

    # PUBLIC_INTERFACE
    async def return_book(self, payload: TransactionAction) -> BookTransactionRead:
        """Close a loan, stamp the return date and put the copy back on the shelf."""
        if payload.transaction_id is None:
            raise BadRequestError("transaction_id is required to return a book")
        tx = await self.repo.get_transaction(payload.transaction_id)
        if tx is None:
            raise NotFoundError("Transaction not found")
        if tx.is_returned:
            raise BadRequestError("Book already returned for this transaction")

        tx.is_returned = True
        tx.return_date = datetime.now(timezone.utc)
        if payload.notes:
            tx.notes = f"{tx.notes}\nReturn notes: {payload.notes}" if tx.notes else f"Return notes: {payload.notes}"
        book = await self.repo.get_book_for_update(tx.book_id)
        if book is not None:
            book.available_copies = min(book.available_copies + 1, book.total_copies)
        else:
            logger.warning("Book %s for transaction %s no longer exists", tx.book_id, tx.id)
        await self.repo.flush()
        read = transaction_to_read(tx, book)
        await self.session.commit()
        return read
