# engagement/routers/articles.py
"""
Content endpoints.

GET  /v1/articles                              - Ranked, filtered content list
GET  /v1/articles/breaking                     - Breaking news (cached 5 min)
GET  /v1/articles/featured                     - Featured articles (cached 10 min)
GET  /v1/articles/{slug}                       - Article detail + related; records a view
GET  /v1/tags/popular                          - Popular tags (cached 1 hour)
POST /v1/internal/articles/{article_id}/changed - CMS hook: evict cached projections
"""

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request

from engagement.constants import EventLimits, ListLimits
from engagement.dependencies import get_content_service, get_dispatcher
from engagement.errors import ArticleNotFoundError, InvalidEventError
from engagement.schemas.articles import (
    ArticleDetailResponse,
    ArticleListResponse,
    ArticleSummary,
    InvalidationResponse,
    PopularTag,
)
from engagement.services.content_service import ContentFilters, ContentService
from engagement.services.dispatcher import EngagementDispatcher
from engagement.services.ranking import parse_criterion
from engagement.services.types import EngagementEvent
from engagement.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/articles", tags=["articles"])
tags_router = APIRouter(prefix="/v1/tags", tags=["tags"])
internal_router = APIRouter(prefix="/v1/internal", tags=["internal"])


def _clip(value: Optional[str], limit: int) -> Optional[str]:
    value = (value or "").strip()
    return value[:limit] or None


def view_from_headers(
    article_id: int,
    client: str,
    session_id: Optional[str],
    referrer: Optional[str],
    country: Optional[str],
) -> EngagementEvent:
    """
    Build a view event from request headers, fitting values to the event columns.

    A missing or blank session falls back to the client address. A country
    outside the accepted code lengths is dropped rather than stored.
    """
    country = _clip(country, EventLimits.COUNTRY_MAX + 1)
    if country and not EventLimits.COUNTRY_MIN <= len(country) <= EventLimits.COUNTRY_MAX:
        country = None
    return EngagementEvent(
        article_id=article_id,
        session_id=_clip(session_id, EventLimits.SESSION_ID_MAX) or f"anon:{client}"[: EventLimits.SESSION_ID_MAX],
        timestamp=utcnow(),
        referrer=_clip(referrer, EventLimits.REFERRER_MAX),
        country=country,
    )


@router.get("", response_model=ArticleListResponse)
def list_articles(
    category: Optional[str] = Query(None, description="Category slug"),
    tag: Optional[str] = Query(None, description="Tag slug"),
    search: Optional[str] = Query(None, min_length=1, description="Substring of title or excerpt"),
    date_from: Optional[date] = Query(None, description="Published on or after this date"),
    date_to: Optional[date] = Query(None, description="Published on or before this date"),
    sort: str = Query("latest", description="latest (default), popular or trending"),
    window_hours: Optional[int] = Query(None, ge=1, le=720, description="Trending lookback in hours (default 24)"),
    page: int = Query(1, ge=1),
    per_page: int = Query(ListLimits.DEFAULT_PER_PAGE, ge=1, le=ListLimits.MAX_PER_PAGE),
    service: ContentService = Depends(get_content_service),
) -> ArticleListResponse:
    """
    List published content ordered by a ranking criterion.

    Trending only includes content published inside the lookback window.
    Unknown sort values fall back to latest.
    """
    filters = ContentFilters(category=category, tag=tag, search=search, date_from=date_from, date_to=date_to)
    criterion = parse_criterion(sort, window_hours or service.settings.TRENDING_WINDOW_HOURS)
    return service.list_content(filters, criterion, page=page, per_page=per_page)


@router.get("/breaking", response_model=List[ArticleSummary])
def breaking_news(service: ContentService = Depends(get_content_service)) -> List[ArticleSummary]:
    return service.breaking_news()


@router.get("/featured", response_model=List[ArticleSummary])
def featured_articles(service: ContentService = Depends(get_content_service)) -> List[ArticleSummary]:
    return service.featured_articles()


@router.get("/{slug}", response_model=ArticleDetailResponse)
def get_article(
    slug: str,
    request: Request,
    x_session_id: Optional[str] = Header(default=None, alias="X-Session-ID"),
    x_country: Optional[str] = Header(default=None, alias="X-Country"),
    referer: Optional[str] = Header(default=None),
    service: ContentService = Depends(get_content_service),
    dispatcher: EngagementDispatcher = Depends(get_dispatcher),
) -> ArticleDetailResponse:
    """
    Get an article with related content.

    Serving the payload never waits on analytics: the view is handed to the
    background dispatcher after the payload is loaded.
    """
    try:
        result = service.get_article(slug)
    except ArticleNotFoundError:
        raise HTTPException(status_code=404, detail="Article not found")

    client = request.client.host if request.client else "unknown"
    try:
        event = view_from_headers(result.article.id, client, x_session_id, referer, x_country)
    except InvalidEventError as e:
        logger.warning(
            f"Skipping view for article {result.article.id}: {e}",
            extra={"event": "engagement_dropped", "article_id": result.article.id},
        )
    else:
        dispatcher.submit(event)
    return result


@tags_router.get("/popular", response_model=List[PopularTag])
def popular_tags(service: ContentService = Depends(get_content_service)) -> List[PopularTag]:
    return service.popular_tags()


@internal_router.post("/articles/{article_id}/changed", response_model=InvalidationResponse)
def article_changed(
    article_id: int,
    previous_slug: Optional[str] = Query(None, description="Old slug if the article was renamed"),
    service: ContentService = Depends(get_content_service),
) -> InvalidationResponse:
    """Evict cached payloads for an article the CMS has edited, renamed or unpublished."""
    evicted = service.article_changed(article_id, slug=previous_slug)
    return InvalidationResponse(article_id=article_id, evicted=evicted)
