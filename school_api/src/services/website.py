from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from src.core.errors import ConflictError, NotFoundError
from src.db.models.website import Article, Event, GalleryItem, WebsiteSettings
from src.repositories.website import WebsiteRepository
from src.schemas.website import ArticleCreate, ArticleUpdate
from src.services.base import BaseService

logger = logging.getLogger(__name__)

ARTICLE_KINDS = ("news", "blog")


class WebsiteService(BaseService):
    """Public school website content: settings, news/blog, gallery and events."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = WebsiteRepository(session)

    @staticmethod
    def _check_kind(kind: str) -> None:
        if kind not in ARTICLE_KINDS:
            raise NotFoundError(f"Unknown article kind '{kind}'")

    # PUBLIC_INTERFACE
    async def get_settings(self) -> WebsiteSettings:
        settings = await self.repo.get_settings()
        if settings is None:
            raise NotFoundError("Website settings not configured")
        return settings

    # PUBLIC_INTERFACE
    async def list_articles(
        self, kind: str, *, include_inactive: bool = False, limit: int = 20, offset: int = 0
    ) -> List[Article]:
        self._check_kind(kind)
        return await self.repo.list_articles(kind, include_inactive=include_inactive, limit=limit, offset=offset)

    # PUBLIC_INTERFACE
    async def read_article(self, kind: str, slug: str, *, admin_view: bool = False) -> Article:
        """
        Fetch one article by slug.

        Public reads only see active articles and bump the view count; admin views
        may see drafts and leave the counter alone.
        """
        self._check_kind(kind)
        article = await self.repo.get_article_by_slug(kind, slug, include_inactive=admin_view)
        if article is None:
            raise NotFoundError("Article not found")
        if not admin_view:
            await self.repo.bump_view_count(article)
            await self.session.commit()
        return article

    # PUBLIC_INTERFACE
    async def create_article(self, kind: str, payload: ArticleCreate, author_id: Optional[UUID] = None) -> Article:
        self._check_kind(kind)
        if await self.repo.get_article_by_slug(kind, payload.slug, include_inactive=True):
            raise ConflictError(f"An article with slug '{payload.slug}' already exists")
        values = payload.model_dump()
        if values.get("published_date") is None and payload.is_active:
            values["published_date"] = datetime.now(timezone.utc)
        article = await self.repo.create(Article(kind=kind, author_id=author_id, **values))
        await self.session.commit()
        logger.info("Published %s article %s", kind, article.slug)
        return article

    # PUBLIC_INTERFACE
    async def update_article(self, kind: str, article_id: UUID, payload: ArticleUpdate) -> Article:
        self._check_kind(kind)
        article = await self.repo.get(Article, article_id)
        if article is None or article.kind != kind:
            raise NotFoundError("Article not found")
        values = payload.model_dump(exclude_unset=True)
        slug = values.get("slug")
        if slug and slug != article.slug:
            if await self.repo.get_article_by_slug(kind, slug, include_inactive=True):
                raise ConflictError(f"An article with slug '{slug}' already exists")
        for key, value in values.items():
            setattr(article, key, value)
        await self.repo.flush()
        await self.repo.refresh(article)
        await self.session.commit()
        return article

    # PUBLIC_INTERFACE
    async def list_gallery(self, album: Optional[str] = None) -> List[GalleryItem]:
        return await self.repo.list_gallery(album)

    # PUBLIC_INTERFACE
    async def upcoming_events(self) -> List[Event]:
        return await self.repo.list_upcoming_events(datetime.now(timezone.utc))
