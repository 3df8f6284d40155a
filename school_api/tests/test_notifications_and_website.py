"""Unit tests for broadcasts and public website content."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest

from src.core.errors import ConflictError, NotFoundError
from src.db.models.website import Article
from src.repositories.website import WebsiteRepository
from src.schemas.notifications import ClassBroadcast
from src.schemas.website import ArticleCreate
from src.services.notifications import NotificationService
from src.services.website import WebsiteService


@pytest.fixture
def notifications(mock_db):
    svc = NotificationService(mock_db)
    svc.repo = AsyncMock()
    svc.academics = AsyncMock()
    return svc


@pytest.fixture
def website(mock_db):
    svc = WebsiteService(mock_db)
    svc.repo = AsyncMock()
    svc.repo.create.side_effect = lambda obj: obj
    return svc


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_without_active_year_sends_nothing(self, notifications, mock_db):
        notifications.academics.get_active_year.return_value = None

        result = await notifications.broadcast(ClassBroadcast(title="Sports day", message="Friday"))

        assert result.notified == 0
        notifications.repo.add_all.assert_not_awaited()
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_notification_per_recipient(self, notifications, mock_db):
        year = SimpleNamespace(id=uuid4())
        notifications.academics.get_active_year.return_value = year
        notifications.repo.student_recipients.return_value = [uuid4(), uuid4(), uuid4()]

        result = await notifications.broadcast(
            ClassBroadcast(title="Exams", message="Start Monday", level="Form 2")
        )

        notifications.repo.student_recipients.assert_awaited_once_with(year.id, "Form 2")
        created = list(notifications.repo.add_all.await_args.args[0])
        assert len(created) == 3
        assert all(n.title == "Exams" for n in created)
        assert result.notified == 3
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_operators_have_no_inbox(self, notifications):
        assert await notifications.list_for_user(None) == []

    @pytest.mark.asyncio
    async def test_mark_read_of_someone_elses_notification(self, notifications):
        notifications.repo.get_for_user.return_value = None
        with pytest.raises(NotFoundError):
            await notifications.mark_read(uuid4(), uuid4())


class TestWebsite:
    @pytest.mark.asyncio
    async def test_public_read_counts_views_in_sql(self, website, mock_db):
        article = SimpleNamespace(slug="open-day", view_count=None)
        website.repo.get_article_by_slug.return_value = article

        await website.read_article("news", "open-day")

        website.repo.bump_view_count.assert_awaited_once_with(article)
        mock_db.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_admin_view_leaves_counter(self, website, mock_db):
        article = SimpleNamespace(slug="draft", view_count=4)
        website.repo.get_article_by_slug.return_value = article

        await website.read_article("blog", "draft", admin_view=True)

        assert article.view_count == 4
        website.repo.bump_view_count.assert_not_awaited()
        website.repo.get_article_by_slug.assert_awaited_once_with("blog", "draft", include_inactive=True)
        mock_db.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_kind(self, website):
        with pytest.raises(NotFoundError):
            await website.list_articles("recipes")

    @pytest.mark.asyncio
    async def test_duplicate_slug(self, website):
        website.repo.get_article_by_slug.return_value = SimpleNamespace(id=uuid4())
        with pytest.raises(ConflictError):
            await website.create_article("news", ArticleCreate(title="Open day", slug="Open-Day", content="..."))

    @pytest.mark.asyncio
    async def test_create_lowercases_slug_and_stamps_publication(self, website):
        website.repo.get_article_by_slug.return_value = None

        article = await website.create_article(
            "news", ArticleCreate(title="Open day", slug="Open-Day", content="Welcome parents")
        )

        assert article.slug == "open-day"
        assert article.kind == "news"
        assert article.published_date is not None


@pytest.mark.asyncio
async def test_view_count_is_incremented_by_the_database(mock_db):
    mock_db.execute.return_value = MagicMock(**{"scalar_one.return_value": 7})
    article = Article(kind="news", slug="open-day", title="Open day", content="...", view_count=6)

    count = await WebsiteRepository(mock_db).bump_view_count(article)

    assert count == 7
    assert article.view_count == 7
    statement = str(mock_db.execute.await_args.args[0])
    assert statement.startswith("UPDATE articles SET view_count=")
    assert "RETURNING articles.view_count" in statement
