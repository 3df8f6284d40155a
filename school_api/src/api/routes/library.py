from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_tenant_session, require_roles
from src.core.roles import ADMIN, LIBRARIAN
from src.repositories.library import LibraryRepository
from src.schemas.library import BookCreate, BookRead, BookTransactionRead, TransactionAction
from src.services.library import LibraryService

router = APIRouter(prefix="/schools/{school_code}/portal/library", tags=["Library"])

_library_staff = require_roles(ADMIN, LIBRARIAN)


# PUBLIC_INTERFACE
@router.get(
    "/books",
    response_model=List[BookRead],
    summary="List books",
    description="Search the catalogue by title, author or ISBN.",
    dependencies=[Depends(_library_staff)],
)
async def list_books(
    session: AsyncSession = Depends(get_tenant_session),
    search: Optional[str] = Query(None, description="Matches title, author or ISBN"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[BookRead]:
    books = await LibraryRepository(session).list_books(search=search, limit=limit, offset=offset)
    return [BookRead.model_validate(b) for b in books]


# PUBLIC_INTERFACE
@router.post(
    "/books",
    response_model=BookRead,
    status_code=status.HTTP_201_CREATED,
    summary="Add book",
)
async def create_book(
    payload: BookCreate,
    principal: Principal = Depends(_library_staff),
    session: AsyncSession = Depends(get_tenant_session),
) -> BookRead:
    book = await LibraryService(session).create_book(payload, added_by_id=principal.tenant_user_id)
    return BookRead.model_validate(book)


# PUBLIC_INTERFACE
@router.get(
    "/transactions",
    response_model=List[BookTransactionRead],
    summary="List loans",
    dependencies=[Depends(_library_staff)],
)
async def list_transactions(
    session: AsyncSession = Depends(get_tenant_session),
    member_id: Optional[UUID] = Query(None),
    book_id: Optional[UUID] = Query(None),
    is_returned: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
) -> List[BookTransactionRead]:
    return await LibraryService(session).list_transactions(
        member_id=member_id, book_id=book_id, is_returned=is_returned, limit=limit, offset=offset
    )


# PUBLIC_INTERFACE
@router.post(
    "/transactions",
    response_model=BookTransactionRead,
    summary="Borrow or return a book",
    description=(
        "action=borrow lends a copy to a member (requires book_id, member_id and due_date); "
        "action=return closes an open loan (requires transaction_id)."
    ),
    dependencies=[Depends(_library_staff)],
)
async def book_transaction(
    payload: TransactionAction,
    session: AsyncSession = Depends(get_tenant_session),
) -> BookTransactionRead:
    return await LibraryService(session).handle(payload)
