"""Unit tests for library circulation."""

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import uuid4

import pytest

from src.core.errors import BadRequestError, NotFoundError
from src.schemas.library import BookCreate, TransactionAction
from src.services.library import LibraryService


def _with_id(obj):
    obj.id = obj.id or uuid4()
    return obj


@pytest.fixture
def book():
    return SimpleNamespace(id=uuid4(), title="Things Fall Apart", available_copies=2, total_copies=3)


@pytest.fixture
def member():
    return SimpleNamespace(id=uuid4(), username="amina", full_name="Amina Juma")


@pytest.fixture
def service(mock_db, book, member):
    svc = LibraryService(mock_db)
    svc.repo = AsyncMock()
    svc.users = AsyncMock()
    svc.repo.create.side_effect = _with_id
    svc.repo.get_book_for_update.return_value = book
    svc.repo.find_open_loan.return_value = None
    svc.users.get_user_by_id.return_value = member
    return svc


def _borrow(book, member, **overrides):
    values = dict(
        action="borrow",
        book_id=book.id,
        member_id=member.id,
        due_date=datetime.now(timezone.utc) + timedelta(days=14),
    )
    values.update(overrides)
    return TransactionAction(**values)


@pytest.mark.asyncio
async def test_invalid_action(service):
    with pytest.raises(BadRequestError) as exc:
        await service.handle(TransactionAction(action="renew"))
    assert exc.value.message == "Invalid action. Must be 'borrow' or 'return'"


@pytest.mark.asyncio
async def test_borrow_takes_a_copy(service, book, member, mock_db):
    read = await service.handle(_borrow(book, member))

    assert book.available_copies == 1
    assert read.book_title == "Things Fall Apart"
    assert read.member_name == "Amina Juma"
    assert read.is_returned is False
    mock_db.commit.assert_awaited_once()


@pytest.mark.asyncio
async def test_borrow_requires_fields(service, book, member):
    with pytest.raises(BadRequestError):
        await service.handle(_borrow(book, member, due_date=None))


@pytest.mark.asyncio
async def test_borrow_without_available_copies(service, book, member, mock_db):
    book.available_copies = 0
    with pytest.raises(BadRequestError):
        await service.handle(_borrow(book, member))
    mock_db.commit.assert_not_awaited()


@pytest.mark.asyncio
async def test_borrow_same_book_twice(service, book, member):
    service.repo.find_open_loan.return_value = SimpleNamespace(id=uuid4())
    with pytest.raises(BadRequestError):
        await service.handle(_borrow(book, member))
    assert book.available_copies == 2


@pytest.mark.asyncio
async def test_borrow_unknown_member(service, book, member):
    service.users.get_user_by_id.return_value = None
    with pytest.raises(NotFoundError):
        await service.handle(_borrow(book, member))


def _loan(book, member, **overrides):
    values = dict(
        id=uuid4(),
        book_id=book.id,
        member_id=member.id,
        book=book,
        member=member,
        borrow_date=datetime.now(timezone.utc) - timedelta(days=3),
        due_date=datetime.now(timezone.utc) + timedelta(days=11),
        return_date=None,
        is_returned=False,
        notes=None,
    )
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.mark.asyncio
async def test_return_restores_copy(service, book, member):
    loan = _loan(book, member)
    service.repo.get_transaction.return_value = loan

    read = await service.handle(TransactionAction(action="return", transaction_id=loan.id, notes="Cover torn"))

    assert read.is_returned is True
    assert read.return_date is not None
    assert loan.notes == "Return notes: Cover torn"
    assert book.available_copies == 3


@pytest.mark.asyncio
async def test_return_never_exceeds_total_copies(service, book, member):
    book.available_copies = book.total_copies
    service.repo.get_transaction.return_value = _loan(book, member)

    await service.handle(TransactionAction(action="return", transaction_id=uuid4()))

    assert book.available_copies == book.total_copies


@pytest.mark.asyncio
async def test_return_twice(service, book, member):
    service.repo.get_transaction.return_value = _loan(book, member, is_returned=True)
    with pytest.raises(BadRequestError):
        await service.handle(TransactionAction(action="return", transaction_id=uuid4()))


@pytest.mark.asyncio
async def test_return_requires_transaction_id(service):
    with pytest.raises(BadRequestError):
        await service.handle(TransactionAction(action="return"))


@pytest.mark.asyncio
async def test_new_book_defaults_available_to_total(service):
    book = await service.create_book(BookCreate(title="Kiswahili Sanifu", total_copies=4))
    assert book.available_copies == 4
