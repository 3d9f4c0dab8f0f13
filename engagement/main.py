# engagement/main.py
"""
Engagement analytics API.

Serves ranked content listings, cached article payloads and analytics
rollups, and accepts content views whose persistence runs in the background.
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from engagement import __version__
from engagement.config import get_settings
from engagement.database import init_db
from engagement.dependencies import get_cache, get_dispatcher
from engagement.logging_config import configure_logging, set_trace_id
from engagement.routers import (
    analytics_router,
    articles_router,
    engagement_router,
    internal_router,
    tags_router,
)
from engagement.services.cache import SingleFlightCache
from engagement.services.dispatcher import EngagementDispatcher

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)
    init_db()
    logger.info(
        f"Engagement API starting ({settings.ENVIRONMENT})",
        extra={"event": "startup"},
    )
    yield
    # Let queued views land before the process exits
    get_dispatcher().shutdown(wait_for_pending=True)


app = FastAPI(
    title="Engagement Analytics API",
    version=__version__,
    lifespan=lifespan,
)

_origins = get_settings().cors_origin_list
if _origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )


@app.middleware("http")
async def trace_requests(request: Request, call_next):
    trace_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    set_trace_id(trace_id)
    response = await call_next(request)
    response.headers["X-Request-ID"] = trace_id
    return response


app.include_router(articles_router)
app.include_router(tags_router)
app.include_router(engagement_router)
app.include_router(analytics_router)
app.include_router(internal_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health(
    dispatcher: EngagementDispatcher = Depends(get_dispatcher),
    cache: SingleFlightCache = Depends(get_cache),
) -> dict:
    return {
        "status": "ok",
        "service": "engagement-api",
        "version": __version__,
        "dispatcher": dispatcher.stats(),
        "cache": cache.stats(),
    }


@app.get("/")
def root() -> dict:
    return {
        "service": "Engagement Analytics API",
        "version": __version__,
        "endpoints": {
            "articles": "/v1/articles",
            "breaking": "/v1/articles/breaking",
            "featured": "/v1/articles/featured",
            "article": "/v1/articles/{slug}",
            "popular_tags": "/v1/tags/popular",
            "record_view": "/v1/engagement/views",
            "dashboard": "/v1/analytics/dashboard",
            "article_analytics": "/v1/analytics/articles/{article_id}",
            "health": "/health",
        },
    }
