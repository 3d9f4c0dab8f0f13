# engagement/services/types.py
"""
Data types shared by the event store, aggregator and ranking engine.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum

from engagement.errors import InvalidEventError


# -----------------------------------------------------------------------------
# Events
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class EngagementEvent:
    """
    A single content view.

    Attributes:
        article_id: Viewed article
        session_id: Visitor session; distinct sessions are counted as unique visitors
        timestamp: When the view happened (naive UTC)
        referrer: Raw Referer header, if any
        country: ISO country code, if geolocated
        dwell_seconds: Seconds spent on the page, if reported
    """

    article_id: int
    session_id: str
    timestamp: datetime
    referrer: str | None = None
    country: str | None = None
    dwell_seconds: int | None = None

    def __post_init__(self):
        if not isinstance(self.article_id, int) or isinstance(self.article_id, bool) or self.article_id <= 0:
            raise InvalidEventError(f"article_id must be a positive integer, got {self.article_id!r}")
        if not self.session_id or not str(self.session_id).strip():
            raise InvalidEventError("session_id is required")
        if not isinstance(self.timestamp, datetime):
            raise InvalidEventError("timestamp is required")
        if self.dwell_seconds is not None and self.dwell_seconds < 0:
            raise InvalidEventError(f"dwell_seconds must be non-negative, got {self.dwell_seconds}")


# -----------------------------------------------------------------------------
# Aggregation
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeRange:
    """Half-open interval [start, end)."""

    start: datetime
    end: datetime
    label: str = "custom"

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end


class Dimension(str, Enum):
    """Rollup dimensions an aggregate() call can request."""

    TOTALS = "totals"
    UNIQUES = "uniques"
    CATEGORY = "category"
    SOURCE = "source"
    TREND = "trend"
    GEO = "geo"
    DWELL = "dwell"


ALL_DIMENSIONS = frozenset(Dimension)


@dataclass(frozen=True)
class TrendPoint:
    """Views observed in one (date, hour) bucket."""

    date: date
    hour: int
    views: int


@dataclass
class RollupResult:
    """
    Aggregates over a window. Dimensions that were not requested stay empty.

    Mappings preserve the order they were built in (largest first), so callers
    can render them directly.
    """

    window: TimeRange
    total_views: int = 0
    unique_sessions: int = 0
    per_category: dict[str, int] = field(default_factory=dict)
    per_source: dict[str, int] = field(default_factory=dict)
    trend_series: list[TrendPoint] = field(default_factory=list)
    per_article_geo: dict[str, int] = field(default_factory=dict)
    avg_dwell_seconds: float = 0.0


# -----------------------------------------------------------------------------
# Ranking
# -----------------------------------------------------------------------------


class RankingStrategy(str, Enum):
    LATEST = "latest"
    POPULARITY = "popular"
    TRENDING = "trending"


@dataclass(frozen=True)
class RankingCriterion:
    """A ranking strategy plus its lookback window (used by TRENDING only)."""

    strategy: RankingStrategy = RankingStrategy.LATEST
    window_hours: int = 24

    @classmethod
    def latest(cls) -> "RankingCriterion":
        return cls(RankingStrategy.LATEST)

    @classmethod
    def popularity(cls) -> "RankingCriterion":
        return cls(RankingStrategy.POPULARITY)

    @classmethod
    def trending(cls, window_hours: int = 24) -> "RankingCriterion":
        if window_hours <= 0:
            raise ValueError("window_hours must be positive")
        return cls(RankingStrategy.TRENDING, window_hours)


@dataclass(frozen=True)
class RankCandidate:
    """What the ranking engine needs to know about one piece of content."""

    content_id: int
    published_at: datetime
    views_count: int = 0


@dataclass(frozen=True)
class TopArticle:
    """One row of a top-content list."""

    article_id: int
    title: str
    slug: str
    category: str | None
    views: int
    published_at: datetime | None
