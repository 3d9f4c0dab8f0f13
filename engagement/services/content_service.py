# engagement/services/content_service.py
"""
Content reads: cached article payloads, curated lists and ranked listings.

Payloads and curated lists are served through the single-flight cache with
fixed TTLs. View counts are never cached; they are attached from the counter
service on every read.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy import desc, func, or_
from sqlalchemy.orm import Session

from engagement import models
from engagement.config import Settings, get_settings
from engagement.constants import ArticleStatus, CacheKeys, ListLimits
from engagement.errors import ArticleNotFoundError
from engagement.schemas.articles import (
    ArticleDetail,
    ArticleDetailResponse,
    ArticleListResponse,
    ArticleSummary,
    PopularTag,
)
from engagement.services.cache import SingleFlightCache, cache_key
from engagement.services.counter_service import CounterService
from engagement.services.ranking import rank, trending_cutoff
from engagement.services.types import RankCandidate, RankingCriterion, RankingStrategy
from engagement.utils.timeutil import utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContentFilters:
    """Filters from the query layer. All are optional and combine with AND."""

    category: str | None = None
    tag: str | None = None
    search: str | None = None
    date_from: date | None = None
    date_to: date | None = None


class ContentService:
    """Reads published content for the public API."""

    def __init__(
        self,
        db: Session,
        cache: SingleFlightCache,
        counters: CounterService,
        settings: Settings | None = None,
        clock=utcnow,
    ):
        self.db = db
        self.cache = cache
        self.counters = counters
        self.settings = settings or get_settings()
        self._clock = clock

    # -------------------------------------------------------------------------
    # Single article
    # -------------------------------------------------------------------------

    def get_article(self, slug: str) -> ArticleDetailResponse:
        """
        Article payload plus related articles.

        The payload is cached by slug; views_count comes from the live counter.

        Raises:
            ArticleNotFoundError: If no published article has this slug
        """
        payload: ArticleDetail = self.cache.get_or_compute(
            cache_key(CacheKeys.ARTICLE, slug),
            self.settings.ARTICLE_CACHE_TTL,
            lambda: self._load_article(slug),
        )
        article = payload.model_copy(update={"views_count": self.counters.current(payload.id)})
        return ArticleDetailResponse(article=article, related=self.related_articles(payload))

    def related_articles(self, article: ArticleSummary) -> list[ArticleSummary]:
        """Newest published articles in the same category, excluding the article itself."""
        if article.category is None:
            return []

        def load() -> list[ArticleSummary]:
            rows = (
                self._published()
                .filter(
                    models.Article.category_id == article.category.id,
                    models.Article.id != article.id,
                )
                .order_by(models.Article.published_at.desc(), models.Article.id.desc())
                .limit(ListLimits.RELATED_ARTICLES)
                .all()
            )
            return [ArticleSummary.model_validate(row) for row in rows]

        return self.cache.get_or_compute(
            cache_key(CacheKeys.RELATED, article.id),
            self.settings.RELATED_ARTICLES_TTL,
            load,
        )

    def article_changed(self, article_id: int, slug: str | None = None) -> int:
        """
        Evict cached projections of an article after the CMS changes it.

        Args:
            article_id: Changed article
            slug: Previous slug, if it was renamed (the current one is looked up)

        Returns:
            Number of cache entries evicted
        """
        slugs = {slug} if slug else set()
        current = self.db.query(models.Article.slug).filter(models.Article.id == article_id).scalar()
        if current:
            slugs.add(current)

        keys = [cache_key(CacheKeys.ARTICLE, s) for s in slugs]
        keys += [cache_key(CacheKeys.RELATED, article_id), cache_key(CacheKeys.ARTICLE_STATS, article_id)]
        evicted = sum(1 for key in keys if self.cache.invalidate(key))

        logger.info(
            f"Article {article_id} changed, evicted {evicted} cache entries",
            extra={"event": "article_cache_evicted", "article_id": article_id},
        )
        return evicted

    # -------------------------------------------------------------------------
    # Curated lists
    # -------------------------------------------------------------------------

    def breaking_news(self) -> list[ArticleSummary]:
        return self.cache.get_or_compute(
            cache_key(CacheKeys.BREAKING),
            self.settings.BREAKING_NEWS_TTL,
            lambda: self._flagged(models.Article.is_breaking, ListLimits.BREAKING_NEWS),
        )

    def featured_articles(self) -> list[ArticleSummary]:
        return self.cache.get_or_compute(
            cache_key(CacheKeys.FEATURED),
            self.settings.FEATURED_ARTICLES_TTL,
            lambda: self._flagged(models.Article.is_featured, ListLimits.FEATURED_ARTICLES),
        )

    def popular_tags(self) -> list[PopularTag]:
        def load() -> list[PopularTag]:
            articles_count = func.count(models.article_tags.c.article_id).label("articles_count")
            rows = (
                self.db.query(models.Tag, articles_count)
                .outerjoin(models.article_tags, models.article_tags.c.tag_id == models.Tag.id)
                .group_by(models.Tag.id)
                .order_by(desc("articles_count"), models.Tag.name)
                .limit(ListLimits.POPULAR_TAGS)
                .all()
            )
            return [
                PopularTag(id=tag.id, name=tag.name, slug=tag.slug, articles_count=int(count))
                for tag, count in rows
            ]

        return self.cache.get_or_compute(cache_key(CacheKeys.POPULAR_TAGS), self.settings.POPULAR_TAGS_TTL, load)

    # -------------------------------------------------------------------------
    # Ranked listing
    # -------------------------------------------------------------------------

    def list_content(
        self,
        filters: ContentFilters,
        criterion: RankingCriterion,
        page: int = 1,
        per_page: int = ListLimits.DEFAULT_PER_PAGE,
    ) -> ArticleListResponse:
        """
        Filter published content, rank it and return one page.

        Counters are read live for every call so popular and trending orders
        reflect the latest increments.
        """
        now = self._clock()
        query = self._filtered(filters).with_entities(models.Article.id, models.Article.published_at)
        if criterion.strategy == RankingStrategy.TRENDING:
            query = query.filter(models.Article.published_at >= trending_cutoff(criterion, now))
        rows = query.all()

        counts = (
            self.counters.current_many(article_id for article_id, _ in rows)
            if criterion.strategy != RankingStrategy.LATEST
            else {}
        )
        candidates = [
            RankCandidate(content_id=article_id, published_at=published_at, views_count=counts.get(article_id, 0))
            for article_id, published_at in rows
        ]
        ranked = rank(criterion, candidates, now)

        start = (page - 1) * per_page
        page_ids = ranked[start : start + per_page]

        by_id = {}
        if page_ids:
            articles = self.db.query(models.Article).filter(models.Article.id.in_(page_ids)).all()
            by_id = {a.id: ArticleSummary.model_validate(a) for a in articles}

        return ArticleListResponse(
            ids=page_ids,
            items=[by_id[i] for i in page_ids if i in by_id],
            sort=criterion.strategy.value,
            window_hours=criterion.window_hours if criterion.strategy == RankingStrategy.TRENDING else None,
            total=len(ranked),
            page=page,
            per_page=per_page,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def _published(self):
        return self.db.query(models.Article).filter(
            models.Article.status == ArticleStatus.PUBLISHED,
            models.Article.published_at.isnot(None),
            models.Article.published_at <= self._clock(),
        )

    def _filtered(self, filters: ContentFilters):
        query = self._published()

        if filters.category:
            query = query.join(models.Category, models.Category.id == models.Article.category_id).filter(
                models.Category.slug == filters.category
            )
        if filters.tag:
            query = query.filter(models.Article.tags.any(models.Tag.slug == filters.tag))
        if filters.search:
            pattern = f"%{filters.search.strip()}%"
            query = query.filter(or_(models.Article.title.ilike(pattern), models.Article.excerpt.ilike(pattern)))
        if filters.date_from:
            query = query.filter(models.Article.published_at >= datetime.combine(filters.date_from, time.min))
        if filters.date_to:
            end = datetime.combine(filters.date_to, time.min) + timedelta(days=1)
            query = query.filter(models.Article.published_at < end)

        return query

    def _load_article(self, slug: str) -> ArticleDetail:
        article = self._published().filter(models.Article.slug == slug).first()
        if not article:
            raise ArticleNotFoundError(slug)
        return ArticleDetail.model_validate(article)

    def _flagged(self, flag, limit: int) -> list[ArticleSummary]:
        rows = (
            self._published()
            .filter(flag.is_(True))
            .order_by(models.Article.published_at.desc(), models.Article.id.desc())
            .limit(limit)
            .all()
        )
        return [ArticleSummary.model_validate(row) for row in rows]
