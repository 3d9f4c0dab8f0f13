"""
API routers for v1 endpoints.
"""

from engagement.routers.analytics import router as analytics_router
from engagement.routers.articles import internal_router, router as articles_router, tags_router
from engagement.routers.engagement import router as engagement_router

__all__ = [
    "analytics_router",
    "articles_router",
    "engagement_router",
    "internal_router",
    "tags_router",
]
