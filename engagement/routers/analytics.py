# engagement/routers/analytics.py
"""
Analytics endpoints.

GET /v1/analytics/dashboard                - Site-wide rollups for a period
GET /v1/analytics/articles/{article_id}    - Per-article stats
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from engagement.constants import Periods
from engagement.dependencies import get_analytics_service
from engagement.errors import ArticleNotFoundError
from engagement.schemas.analytics import ArticleAnalyticsResponse, DashboardResponse
from engagement.services.analytics_service import AnalyticsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/analytics", tags=["analytics"])


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    period: str = Query(
        Periods.TODAY,
        description="today, week, month or year; anything else is the trailing 7 days",
    ),
    service: AnalyticsService = Depends(get_analytics_service),
) -> DashboardResponse:
    """
    Site-wide engagement for a period.

    Cached for a short staleness bound. trend_data lists only the (date, hour)
    buckets that saw views; empty hours are not filled in.
    """
    return service.dashboard(period)


@router.get("/articles/{article_id}", response_model=ArticleAnalyticsResponse)
def article_analytics(
    article_id: int,
    service: AnalyticsService = Depends(get_analytics_service),
) -> ArticleAnalyticsResponse:
    try:
        return service.article_analytics(article_id)
    except ArticleNotFoundError:
        raise HTTPException(status_code=404, detail="Article not found")
