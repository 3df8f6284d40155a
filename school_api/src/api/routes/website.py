from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.deps import Principal, get_optional_principal, get_tenant_session, require_roles
from src.core.roles import ADMIN
from src.schemas.website import (
    ArticleCreate,
    ArticleRead,
    ArticleUpdate,
    EventRead,
    GalleryItemRead,
    WebsiteSettingsRead,
)
from src.services.website import WebsiteService

router = APIRouter(prefix="/schools/{school_code}/website", tags=["Website"])


def _is_school_admin(principal: Optional[Principal], school_code: str) -> bool:
    if principal is None:
        return False
    if principal.is_superadmin:
        return True
    return principal.role == ADMIN and principal.belongs_to(school_code)


# PUBLIC_INTERFACE
@router.get("/settings", response_model=WebsiteSettingsRead, summary="Website settings")
async def website_settings(session: AsyncSession = Depends(get_tenant_session)) -> WebsiteSettingsRead:
    """Branding, contact details and navigation of the school website."""
    return WebsiteSettingsRead.model_validate(await WebsiteService(session).get_settings())


# PUBLIC_INTERFACE
@router.get("/gallery", response_model=List[GalleryItemRead], summary="Gallery")
async def gallery(
    session: AsyncSession = Depends(get_tenant_session),
    album: Optional[str] = Query(None),
) -> List[GalleryItemRead]:
    return [GalleryItemRead.model_validate(g) for g in await WebsiteService(session).list_gallery(album)]


# PUBLIC_INTERFACE
@router.get("/events", response_model=List[EventRead], summary="Upcoming events")
async def upcoming_events(session: AsyncSession = Depends(get_tenant_session)) -> List[EventRead]:
    return [EventRead.model_validate(e) for e in await WebsiteService(session).upcoming_events()]


# PUBLIC_INTERFACE
@router.get(
    "/{kind}",
    response_model=List[ArticleRead],
    summary="List articles",
    description="Published news or blog articles, newest first. include_inactive needs a school admin token.",
)
async def list_articles(
    school_code: str = Path(..., description="School code"),
    kind: str = Path(..., description="news or blog"),
    include_inactive: bool = Query(False),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: AsyncSession = Depends(get_tenant_session),
) -> List[ArticleRead]:
    if include_inactive and not _is_school_admin(principal, school_code):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    rows = await WebsiteService(session).list_articles(
        kind, include_inactive=include_inactive, limit=limit, offset=offset
    )
    return [ArticleRead.model_validate(a) for a in rows]


# PUBLIC_INTERFACE
@router.get(
    "/{kind}/{slug}",
    response_model=ArticleRead,
    summary="Read article",
    description="Public reads count a view. admin_view=true shows drafts without counting and needs a school admin token.",
)
async def read_article(
    school_code: str = Path(..., description="School code"),
    kind: str = Path(..., description="news or blog"),
    slug: str = Path(...),
    admin_view: bool = Query(False),
    principal: Optional[Principal] = Depends(get_optional_principal),
    session: AsyncSession = Depends(get_tenant_session),
) -> ArticleRead:
    if admin_view and not _is_school_admin(principal, school_code):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    article = await WebsiteService(session).read_article(kind, slug.lower(), admin_view=admin_view)
    return ArticleRead.model_validate(article)


# PUBLIC_INTERFACE
@router.post(
    "/{kind}",
    response_model=ArticleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create article",
)
async def create_article(
    payload: ArticleCreate,
    kind: str = Path(..., description="news or blog"),
    principal: Principal = Depends(require_roles(ADMIN)),
    session: AsyncSession = Depends(get_tenant_session),
) -> ArticleRead:
    article = await WebsiteService(session).create_article(kind, payload, author_id=principal.tenant_user_id)
    return ArticleRead.model_validate(article)


# PUBLIC_INTERFACE
@router.patch(
    "/{kind}/{article_id}",
    response_model=ArticleRead,
    summary="Update article",
    dependencies=[Depends(require_roles(ADMIN))],
)
async def update_article(
    payload: ArticleUpdate,
    kind: str = Path(..., description="news or blog"),
    article_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> ArticleRead:
    return ArticleRead.model_validate(await WebsiteService(session).update_article(kind, article_id, payload))
