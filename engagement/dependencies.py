# engagement/dependencies.py
"""
Process-wide service instances and their FastAPI dependency providers.

The cache, counters, aggregator and dispatcher are shared across requests;
per-request services wrap the request's DB session around them.
"""

from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from engagement.config import get_settings
from engagement.database import SessionLocal, get_db
from engagement.services.aggregator import Aggregator
from engagement.services.analytics_service import AnalyticsService
from engagement.services.cache import SingleFlightCache
from engagement.services.content_service import ContentService
from engagement.services.counter_service import CounterService
from engagement.services.dispatcher import EngagementDispatcher
from engagement.services.event_store import EventStore
from engagement.services.resilience import CircuitBreaker, RateLimiter


@lru_cache(maxsize=1)
def get_cache() -> SingleFlightCache:
    return SingleFlightCache(maxsize=get_settings().CACHE_MAX_ENTRIES)


@lru_cache(maxsize=1)
def get_counter_service() -> CounterService:
    return CounterService(SessionLocal)


@lru_cache(maxsize=1)
def get_aggregator() -> Aggregator:
    return Aggregator(SessionLocal)


@lru_cache(maxsize=1)
def get_dispatcher() -> EngagementDispatcher:
    settings = get_settings()
    return EngagementDispatcher(
        EventStore(SessionLocal),
        get_counter_service(),
        max_workers=settings.ANALYTICS_WORKERS,
        max_attempts=settings.ANALYTICS_MAX_ATTEMPTS,
        min_wait=settings.ANALYTICS_RETRY_MIN_WAIT,
        max_wait=settings.ANALYTICS_RETRY_MAX_WAIT,
        breaker=CircuitBreaker(
            name="engagement-storage",
            failure_threshold=settings.STORAGE_FAILURE_THRESHOLD,
            reset_timeout_seconds=settings.STORAGE_RESET_TIMEOUT,
        ),
    )


@lru_cache(maxsize=1)
def get_view_rate_limiter() -> RateLimiter:
    return RateLimiter.per_minute(get_settings().VIEW_RATE_LIMIT_PER_MINUTE)


def get_content_service(
    db: Session = Depends(get_db),
    cache: SingleFlightCache = Depends(get_cache),
    counters: CounterService = Depends(get_counter_service),
) -> ContentService:
    return ContentService(db, cache, counters)


def get_analytics_service(
    db: Session = Depends(get_db),
    cache: SingleFlightCache = Depends(get_cache),
    aggregator: Aggregator = Depends(get_aggregator),
    counters: CounterService = Depends(get_counter_service),
) -> AnalyticsService:
    return AnalyticsService(db, cache, aggregator, counters)
