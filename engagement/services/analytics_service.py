# engagement/services/analytics_service.py
"""
Analytics queries for the presentation layer.

Both queries are read-only. Rollups are cached for a short staleness bound;
all-time view counts are always read live from the counter service.
"""

import logging

from sqlalchemy.orm import Session

from engagement import models
from engagement.config import Settings, get_settings
from engagement.constants import CacheKeys, ListLimits, Periods
from engagement.errors import ArticleNotFoundError
from engagement.schemas.analytics import (
    ArticleAnalyticsResponse,
    ArticleStats,
    DashboardResponse,
    TopArticleOut,
    TrendPointOut,
    WindowOut,
)
from engagement.schemas.articles import ArticleSummary
from engagement.services.aggregator import ALL_TIME, Aggregator
from engagement.services.cache import SingleFlightCache, cache_key
from engagement.services.counter_service import CounterService
from engagement.services.types import Dimension
from engagement.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

DASHBOARD_DIMENSIONS = frozenset(
    {Dimension.TOTALS, Dimension.UNIQUES, Dimension.CATEGORY, Dimension.SOURCE, Dimension.TREND}
)


class AnalyticsService:
    """Dashboard and per-article analytics."""

    def __init__(
        self,
        db: Session,
        cache: SingleFlightCache,
        aggregator: Aggregator,
        counters: CounterService,
        settings: Settings | None = None,
    ):
        self.db = db
        self.cache = cache
        self.aggregator = aggregator
        self.counters = counters
        self.settings = settings or get_settings()

    def dashboard(self, period: str | None = Periods.TODAY) -> DashboardResponse:
        """
        Site-wide rollups for a named period.

        Unknown period names resolve to the default trailing-7-days window.
        Results are cached per resolved period for DASHBOARD_CACHE_TTL seconds.
        """
        window = self.aggregator.window_for(period)

        def compute() -> DashboardResponse:
            rollup = self.aggregator.aggregate(window, DASHBOARD_DIMENSIONS)
            top = self.aggregator.top_articles(window, limit=ListLimits.DASHBOARD_TOP_ARTICLES)
            logger.info(
                f"Dashboard computed for {window.label}: {rollup.total_views} views",
                extra={"event": "dashboard_computed", "period": window.label, "total_views": rollup.total_views},
            )
            return DashboardResponse(
                period=window.label,
                window=WindowOut(start=window.start, end=window.end),
                total_views=rollup.total_views,
                unique_visitors=rollup.unique_sessions,
                top_articles=[
                    TopArticleOut(
                        id=a.article_id,
                        title=a.title,
                        slug=a.slug,
                        category=a.category,
                        views=a.views,
                        published_at=a.published_at,
                    )
                    for a in top
                ],
                views_by_category=rollup.per_category,
                traffic_sources=rollup.per_source,
                trend_data=[TrendPointOut(date=p.date, hour=p.hour, views=p.views) for p in rollup.trend_series],
                generated_at=utcnow(),
            )

        return self.cache.get_or_compute(
            cache_key(CacheKeys.DASHBOARD, window.label),
            self.settings.DASHBOARD_CACHE_TTL,
            compute,
        )

    def article_analytics(self, article_id: int) -> ArticleAnalyticsResponse:
        """
        Per-article engagement.

        Raises:
            ArticleNotFoundError: If the article does not exist
        """
        article = self.db.get(models.Article, article_id)
        if article is None:
            raise ArticleNotFoundError(article_id)
        summary = ArticleSummary.model_validate(article)

        def compute() -> ArticleStats:
            today = self.aggregator.aggregate(
                self.aggregator.window_for(Periods.TODAY), {Dimension.TOTALS}, article_id=article_id
            )
            week = self.aggregator.aggregate(
                self.aggregator.window_for(Periods.WEEK), {Dimension.TOTALS}, article_id=article_id
            )
            lifetime = self.aggregator.aggregate(ALL_TIME, {Dimension.GEO, Dimension.DWELL}, article_id=article_id)
            return ArticleStats(
                total_views=0,
                views_today=today.total_views,
                views_this_week=week.total_views,
                avg_time_spent=lifetime.avg_dwell_seconds,
                geo_distribution=lifetime.per_article_geo,
            )

        stats: ArticleStats = self.cache.get_or_compute(
            cache_key(CacheKeys.ARTICLE_STATS, article_id),
            self.settings.ARTICLE_STATS_CACHE_TTL,
            compute,
        )
        live = stats.model_copy(update={"total_views": self.counters.current(article_id)})
        return ArticleAnalyticsResponse(article=summary, analytics=live)
