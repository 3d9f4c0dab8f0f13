"""
Pydantic schemas for API request/response validation.
"""

from engagement.schemas.analytics import (
    ArticleAnalyticsResponse,
    ArticleStats,
    DashboardResponse,
    TopArticleOut,
    TrendPointOut,
    WindowOut,
)
from engagement.schemas.articles import (
    ArticleDetail,
    ArticleDetailResponse,
    ArticleListResponse,
    ArticleSummary,
    CategoryOut,
    InvalidationResponse,
    PopularTag,
    TagOut,
)
from engagement.schemas.engagement import ViewAccepted, ViewEventIn

__all__ = [
    "ArticleAnalyticsResponse",
    "ArticleStats",
    "DashboardResponse",
    "TopArticleOut",
    "TrendPointOut",
    "WindowOut",
    "ArticleDetail",
    "ArticleDetailResponse",
    "ArticleListResponse",
    "ArticleSummary",
    "CategoryOut",
    "InvalidationResponse",
    "PopularTag",
    "TagOut",
    "ViewAccepted",
    "ViewEventIn",
]
