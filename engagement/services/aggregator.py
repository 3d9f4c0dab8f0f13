# engagement/services/aggregator.py
"""
Engagement rollups.

Computes totals, unique visitors, per-category views, traffic sources, hourly
trend series, geo breakdowns and dwell averages over the event store for a
time window. Read-only: runs concurrently with event appends and counter
increments without locking, so rollups are eventually consistent with them.
"""

import logging
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta

from sqlalchemy import desc, distinct, extract, func
from sqlalchemy.orm import Session

from engagement.constants import ArticleStatus, ListLimits, Periods, TrafficSources
from engagement.logging_config import log_operation
from engagement.models import Article, ArticleCounter, Category, EngagementEventRow
from engagement.services.types import (
    ALL_DIMENSIONS,
    Dimension,
    RollupResult,
    TimeRange,
    TopArticle,
    TrendPoint,
)
from engagement.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

ALL_TIME = TimeRange(datetime.min, datetime.max, "all_time")


# -----------------------------------------------------------------------------
# Periods
# -----------------------------------------------------------------------------


def _add_month(moment: datetime) -> datetime:
    if moment.month == 12:
        return moment.replace(year=moment.year + 1, month=1)
    return moment.replace(month=moment.month + 1)


def resolve_period(period: str | None, now: datetime | None = None) -> TimeRange:
    """
    Resolve a named period to a half-open window anchored at now.

    today/week/month/year are calendar windows (weeks start on Monday). Any
    other value, including None, is the default period: the trailing 7 days
    ending now.
    """
    now = now or utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)

    if period == Periods.TODAY:
        return TimeRange(midnight, midnight + timedelta(days=1), Periods.TODAY)
    if period == Periods.WEEK:
        start = midnight - timedelta(days=midnight.weekday())
        return TimeRange(start, start + timedelta(days=7), Periods.WEEK)
    if period == Periods.MONTH:
        start = midnight.replace(day=1)
        return TimeRange(start, _add_month(start), Periods.MONTH)
    if period == Periods.YEAR:
        start = midnight.replace(month=1, day=1)
        return TimeRange(start, start.replace(year=start.year + 1), Periods.YEAR)

    return TimeRange(now - timedelta(days=Periods.DEFAULT_DAYS), now, Periods.DEFAULT)


# -----------------------------------------------------------------------------
# Traffic sources
# -----------------------------------------------------------------------------


def _mentions(needle: str) -> Callable[[str | None], bool]:
    return lambda referrer: bool(referrer) and needle in referrer.lower()


def _is_direct(referrer: str | None) -> bool:
    return referrer is None or referrer.strip() == ""


# Evaluated top to bottom; the first matching rule wins. The last rule is the catch-all.
TRAFFIC_SOURCE_RULES: list[tuple[Callable[[str | None], bool], str]] = [
    (_mentions("google"), TrafficSources.GOOGLE),
    (_mentions("facebook"), TrafficSources.FACEBOOK),
    (_mentions("twitter"), TrafficSources.TWITTER),
    (_is_direct, TrafficSources.DIRECT),
    (lambda referrer: True, TrafficSources.OTHER),
]

_SOURCE_PRIORITY = {label: i for i, (_, label) in enumerate(TRAFFIC_SOURCE_RULES)}


def classify_referrer(referrer: str | None) -> str:
    """Map a referrer to exactly one traffic source label."""
    for predicate, label in TRAFFIC_SOURCE_RULES:
        if predicate(referrer):
            return label
    return TrafficSources.OTHER


def summarize_sources(referrer_counts: Iterable[tuple[str | None, int]]) -> dict[str, int]:
    """Fold (referrer, count) pairs into label totals, largest first."""
    totals: dict[str, int] = {}
    for referrer, count in referrer_counts:
        label = classify_referrer(referrer)
        totals[label] = totals.get(label, 0) + int(count)
    ordered = sorted(totals.items(), key=lambda item: (-item[1], _SOURCE_PRIORITY[item[0]]))
    return dict(ordered)


# -----------------------------------------------------------------------------
# Aggregator
# -----------------------------------------------------------------------------


def _as_date(value) -> date:
    # SQLite returns DATE() as 'YYYY-MM-DD'; Postgres returns a date
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


class Aggregator:
    """Rollups over engagement events for a window and dimension set."""

    def __init__(self, session_factory: Callable[[], Session], clock: Callable[[], datetime] = utcnow):
        self._session_factory = session_factory
        self._clock = clock

    def window_for(self, period: str | None) -> TimeRange:
        return resolve_period(period, self._clock())

    def aggregate(
        self,
        window: TimeRange,
        dimensions: Iterable[Dimension] = ALL_DIMENSIONS,
        article_id: int | None = None,
    ) -> RollupResult:
        """
        Compute the requested dimensions over events in window.

        Args:
            window: Half-open [start, end) interval
            dimensions: Which rollups to compute; others stay empty
            article_id: Restrict to one article's events

        Returns:
            RollupResult. A window without events yields zeros and empty
            mappings, never an error.
        """
        dims = frozenset(Dimension(d) for d in dimensions)
        result = RollupResult(window=window)

        db = self._session_factory()
        try:
            with log_operation(
                "aggregate",
                logger_name=__name__,
                period=window.label,
                article_id=article_id,
                dimensions=sorted(d.value for d in dims),
            ):
                if Dimension.TOTALS in dims:
                    result.total_views = self._total_views(db, window, article_id)
                if Dimension.UNIQUES in dims:
                    result.unique_sessions = self._unique_sessions(db, window, article_id)
                if Dimension.CATEGORY in dims:
                    result.per_category = self._views_by_category(db, window, article_id)
                if Dimension.SOURCE in dims:
                    result.per_source = self._traffic_sources(db, window, article_id)
                if Dimension.TREND in dims:
                    result.trend_series = self._trend_series(db, window, article_id)
                if Dimension.GEO in dims:
                    result.per_article_geo = self._geo_distribution(db, window, article_id)
                if Dimension.DWELL in dims:
                    result.avg_dwell_seconds = self._average_dwell(db, window, article_id)
        finally:
            db.close()

        return result

    def top_articles(
        self,
        window: TimeRange,
        limit: int = ListLimits.DASHBOARD_TOP_ARTICLES,
        scope: str = "all_time",
    ) -> list[TopArticle]:
        """
        Top content for a window.

        scope="all_time" ranks articles published inside the window by their
        all-time view counter. scope="window" ranks all articles by the views
        they received inside the window. Ties go to the most recently published.
        """
        if limit <= 0:
            return []

        db = self._session_factory()
        try:
            if scope == "window":
                views = (
                    db.query(
                        EngagementEventRow.article_id.label("article_id"),
                        func.count(EngagementEventRow.id).label("views"),
                    )
                    .filter(
                        EngagementEventRow.occurred_at >= window.start,
                        EngagementEventRow.occurred_at < window.end,
                    )
                    .group_by(EngagementEventRow.article_id)
                    .subquery()
                )
                views_col = views.c.views
                query = db.query(Article, views_col).join(views, views.c.article_id == Article.id)
            elif scope == "all_time":
                views_col = func.coalesce(ArticleCounter.views_count, 0)
                query = (
                    db.query(Article, views_col)
                    .outerjoin(ArticleCounter, ArticleCounter.article_id == Article.id)
                    .filter(Article.published_at >= window.start, Article.published_at < window.end)
                )
            else:
                raise ValueError(f"Unknown top-articles scope: {scope}")

            rows = (
                query.filter(Article.status == ArticleStatus.PUBLISHED, Article.published_at <= self._clock())
                .order_by(desc(views_col), Article.published_at.desc(), Article.id.desc())
                .limit(limit)
                .all()
            )

            return [
                TopArticle(
                    article_id=article.id,
                    title=article.title,
                    slug=article.slug,
                    category=article.category.name if article.category else None,
                    views=int(views or 0),
                    published_at=article.published_at,
                )
                for article, views in rows
            ]
        finally:
            db.close()

    # -------------------------------------------------------------------------
    # Dimensions
    # -------------------------------------------------------------------------

    @staticmethod
    def _events(db: Session, window: TimeRange, article_id: int | None, *columns):
        query = db.query(*columns).select_from(EngagementEventRow).filter(
            EngagementEventRow.occurred_at >= window.start,
            EngagementEventRow.occurred_at < window.end,
        )
        if article_id is not None:
            query = query.filter(EngagementEventRow.article_id == article_id)
        return query

    def _total_views(self, db: Session, window: TimeRange, article_id: int | None) -> int:
        return int(self._events(db, window, article_id, func.count(EngagementEventRow.id)).scalar() or 0)

    def _unique_sessions(self, db: Session, window: TimeRange, article_id: int | None) -> int:
        count = self._events(db, window, article_id, func.count(distinct(EngagementEventRow.session_id))).scalar()
        return int(count or 0)

    def _views_by_category(self, db: Session, window: TimeRange, article_id: int | None) -> dict[str, int]:
        views = func.count(EngagementEventRow.id).label("views")
        rows = (
            self._events(db, window, article_id, Category.name, views)
            .join(Article, Article.id == EngagementEventRow.article_id)
            .join(Category, Category.id == Article.category_id)
            .group_by(Category.id, Category.name)
            .order_by(desc("views"), Category.name)
            .all()
        )
        return {name: int(count) for name, count in rows}

    def _traffic_sources(self, db: Session, window: TimeRange, article_id: int | None) -> dict[str, int]:
        rows = (
            self._events(db, window, article_id, EngagementEventRow.referrer, func.count(EngagementEventRow.id))
            .group_by(EngagementEventRow.referrer)
            .all()
        )
        return summarize_sources(rows)

    def _trend_series(self, db: Session, window: TimeRange, article_id: int | None) -> list[TrendPoint]:
        day = func.date(EngagementEventRow.occurred_at).label("day")
        hour = extract("hour", EngagementEventRow.occurred_at).label("hour")
        rows = (
            self._events(db, window, article_id, day, hour, func.count(EngagementEventRow.id))
            .group_by(day, hour)
            .all()
        )
        # Sparse: only buckets that saw events
        points = [TrendPoint(date=_as_date(d), hour=int(h), views=int(c)) for d, h, c in rows]
        points.sort(key=lambda p: (p.date, p.hour))
        return points

    def _geo_distribution(self, db: Session, window: TimeRange, article_id: int | None) -> dict[str, int]:
        count = func.count(EngagementEventRow.id).label("views")
        rows = (
            self._events(db, window, article_id, EngagementEventRow.country, count)
            .filter(EngagementEventRow.country.isnot(None))
            .group_by(EngagementEventRow.country)
            .order_by(desc("views"), EngagementEventRow.country)
            .limit(ListLimits.GEO_COUNTRIES)
            .all()
        )
        return {country: int(views) for country, views in rows}

    def _average_dwell(self, db: Session, window: TimeRange, article_id: int | None) -> float:
        # Null and zero dwell are excluded, not averaged in as zero
        avg = (
            self._events(db, window, article_id, func.avg(EngagementEventRow.dwell_seconds))
            .filter(EngagementEventRow.dwell_seconds > 0)
            .scalar()
        )
        return round(float(avg), 2) if avg is not None else 0.0
