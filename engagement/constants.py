# engagement/constants.py
"""
Centralized magic constants organized by domain.
"""


class CacheKeys:
    """Namespaces for cache keys. Keys are built with services.cache.cache_key()."""

    ARTICLE = "article"
    RELATED = "related_articles"
    BREAKING = "breaking_news"
    FEATURED = "featured_articles"
    POPULAR_TAGS = "popular_tags"
    DASHBOARD = "dashboard"
    ARTICLE_STATS = "article_stats"


class ListLimits:
    """Sizes of curated lists and top-N rails."""

    DASHBOARD_TOP_ARTICLES = 10
    BREAKING_NEWS = 5
    FEATURED_ARTICLES = 6
    POPULAR_TAGS = 20
    RELATED_ARTICLES = 4
    GEO_COUNTRIES = 10

    DEFAULT_PER_PAGE = 12
    MAX_PER_PAGE = 100


class Periods:
    """Named dashboard periods. Anything else resolves to the default period."""

    TODAY = "today"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    DEFAULT = "default"

    DEFAULT_DAYS = 7


class TrafficSources:
    """Traffic source labels, in classification priority order."""

    GOOGLE = "Google"
    FACEBOOK = "Facebook"
    TWITTER = "Twitter"
    DIRECT = "Direct"
    OTHER = "Other Referrals"


class ArticleStatus:
    """Publication states owned by the content-management layer."""

    DRAFT = "draft"
    PUBLISHED = "published"


class EventLimits:
    """Column widths of engagement_events; values outside them never reach storage."""

    SESSION_ID_MAX = 128
    COUNTRY_MIN = 2
    COUNTRY_MAX = 8
    REFERRER_MAX = 2048
