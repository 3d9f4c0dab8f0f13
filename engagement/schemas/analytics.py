# engagement/schemas/analytics.py
"""
Schemas for analytics endpoints.

GET /v1/analytics/dashboard?period=      - Site-wide rollups
GET /v1/analytics/articles/{article_id}  - Per-article stats
"""

from datetime import date, datetime

from pydantic import BaseModel, Field

from engagement.schemas.articles import ArticleSummary


class WindowOut(BaseModel):
    start: datetime
    end: datetime


class TopArticleOut(BaseModel):
    id: int
    title: str
    slug: str
    category: str | None = None
    views: int
    published_at: datetime | None = None


class TrendPointOut(BaseModel):
    date: date
    hour: int = Field(..., ge=0, le=23)
    views: int


class DashboardResponse(BaseModel):
    """Site-wide engagement for a period. Trend data is sparse (observed hours only)."""

    period: str = Field(..., description="Resolved period: today, week, month, year or default")
    window: WindowOut
    total_views: int
    unique_visitors: int
    top_articles: list[TopArticleOut] = Field(default_factory=list)
    views_by_category: dict[str, int] = Field(default_factory=dict)
    traffic_sources: dict[str, int] = Field(default_factory=dict)
    trend_data: list[TrendPointOut] = Field(default_factory=list)
    generated_at: datetime


class ArticleStats(BaseModel):
    total_views: int = Field(..., description="All-time views (live counter)")
    views_today: int
    views_this_week: int
    avg_time_spent: float = Field(..., description="Mean dwell seconds over views with dwell > 0")
    geo_distribution: dict[str, int] = Field(default_factory=dict, description="Top 10 countries by views")


class ArticleAnalyticsResponse(BaseModel):
    article: ArticleSummary
    analytics: ArticleStats
