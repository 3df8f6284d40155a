from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm.attributes import set_committed_value

from src.db.models.website import Article, Event, GalleryItem, WebsiteSettings
from .base import BaseRepository


class WebsiteRepository(BaseRepository):
    """Repository for public website content."""

    async def get_settings(self) -> Optional[WebsiteSettings]:
        stmt = select(WebsiteSettings).order_by(WebsiteSettings.created_at).limit(1)
        return await self.scalar_one_or_none(stmt)

    async def list_articles(
        self, kind: str, *, include_inactive: bool = False, limit: int = 20, offset: int = 0
    ) -> List[Article]:
        stmt = select(Article).where(Article.kind == kind)
        if include_inactive:
            stmt = stmt.order_by(Article.created_at.desc())
        else:
            stmt = stmt.where(Article.is_active.is_(True)).order_by(
                Article.published_date.desc().nulls_last(), Article.created_at.desc()
            )
        stmt = stmt.offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def get_article_by_slug(self, kind: str, slug: str, *, include_inactive: bool = False) -> Optional[Article]:
        stmt = select(Article).where(Article.kind == kind, Article.slug == slug.strip().lower())
        if not include_inactive:
            stmt = stmt.where(Article.is_active.is_(True))
        return await self.scalar_one_or_none(stmt)

    async def bump_view_count(self, article: Article) -> int:
        """Increment the stored view count in SQL and mirror the result onto the loaded article."""
        stmt = (
            update(Article)
            .where(Article.id == article.id)
            .values(view_count=func.coalesce(Article.view_count, 0) + 1)
            .returning(Article.view_count)
            .execution_options(synchronize_session=False)
        )
        count = (await self.execute(stmt)).scalar_one()
        set_committed_value(article, "view_count", count)
        return count

    async def list_gallery(self, album: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[GalleryItem]:
        stmt = select(GalleryItem).where(GalleryItem.is_active.is_(True))
        if album:
            stmt = stmt.where(GalleryItem.album == album)
        stmt = stmt.order_by(GalleryItem.created_at.desc()).offset(offset).limit(limit)
        return list(await self.scalars(stmt))

    async def list_upcoming_events(self, now: datetime, limit: int = 50) -> List[Event]:
        stmt = (
            select(Event)
            .where(Event.is_active.is_(True), Event.start_date >= now)
            .order_by(Event.start_date)
            .limit(limit)
        )
        return list(await self.scalars(stmt))

    async def create(self, entity: Any) -> Any:
        await self.add(entity)
        await self.flush()
        await self.refresh(entity)
        return entity
