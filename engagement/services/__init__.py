"""
Business logic services.
"""

from engagement.services.aggregator import Aggregator, classify_referrer, resolve_period
from engagement.services.analytics_service import AnalyticsService
from engagement.services.cache import SingleFlightCache, cache_key
from engagement.services.content_service import ContentFilters, ContentService
from engagement.services.counter_service import CounterService
from engagement.services.dispatcher import EngagementDispatcher
from engagement.services.event_store import EventStore
from engagement.services.ranking import parse_criterion, rank

__all__ = [
    "Aggregator",
    "classify_referrer",
    "resolve_period",
    "AnalyticsService",
    "SingleFlightCache",
    "cache_key",
    "ContentFilters",
    "ContentService",
    "CounterService",
    "EngagementDispatcher",
    "EventStore",
    "parse_criterion",
    "rank",
]
