# engagement/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Fail fast with clear error messages if required config is missing.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str = Field(
        ...,
        description="PostgreSQL connection URL (sqlite:// is accepted for local dev and tests)",
    )

    # Application
    ENVIRONMENT: str = Field(
        default="development",
        description="Environment: development, staging, production",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Root log level (DEBUG, INFO, WARNING, ERROR)",
    )
    LOG_JSON: bool = Field(
        default=True,
        description="Emit single-line JSON logs. Disable for human-readable local output.",
    )
    CORS_ORIGINS: str = Field(
        default="",
        description="Comma-separated list of allowed CORS origins",
    )

    # Cache layer
    CACHE_MAX_ENTRIES: int = Field(
        default=2048,
        description="Maximum number of cached projections held in memory",
    )
    ARTICLE_CACHE_TTL: int = Field(
        default=3600,
        description="Seconds a single-article payload stays cached (keyed by slug)",
    )
    BREAKING_NEWS_TTL: int = Field(default=300, description="Seconds the breaking-news list stays cached")
    FEATURED_ARTICLES_TTL: int = Field(default=600, description="Seconds the featured list stays cached")
    POPULAR_TAGS_TTL: int = Field(default=3600, description="Seconds the popular-tags list stays cached")
    RELATED_ARTICLES_TTL: int = Field(default=1800, description="Seconds a related-articles list stays cached")
    DASHBOARD_CACHE_TTL: int = Field(
        default=60,
        description="Staleness bound in seconds for dashboard rollups",
    )
    ARTICLE_STATS_CACHE_TTL: int = Field(
        default=60,
        description="Staleness bound in seconds for per-article rollups",
    )

    # Ranking
    TRENDING_WINDOW_HOURS: int = Field(
        default=24,
        description="Default lookback window for the trending criterion",
    )

    # Background analytics worker
    ANALYTICS_WORKERS: int = Field(
        default=4,
        description="Threads in the engagement side-effect worker pool",
    )
    ANALYTICS_MAX_ATTEMPTS: int = Field(
        default=3,
        description="Attempts per side effect (event append, counter increment) before giving up",
    )
    ANALYTICS_RETRY_MIN_WAIT: float = Field(default=0.2, description="Initial backoff between attempts (seconds)")
    ANALYTICS_RETRY_MAX_WAIT: float = Field(default=5.0, description="Backoff cap between attempts (seconds)")
    STORAGE_FAILURE_THRESHOLD: int = Field(
        default=5,
        description="Consecutive storage failures before side effects are dropped (circuit opens)",
    )
    STORAGE_RESET_TIMEOUT: int = Field(
        default=30,
        description="Seconds the storage circuit stays open before a test call is allowed",
    )

    # Ingest endpoint
    VIEW_RATE_LIMIT_PER_MINUTE: int = Field(
        default=60,
        description="View events accepted per client per minute on the ingest endpoint",
    )

    @field_validator("DATABASE_URL")
    @classmethod
    def fix_database_url(cls, v: str) -> str:
        """Hosted Postgres provides postgresql:// but SQLAlchemy needs postgresql+psycopg2://"""
        if v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+psycopg2://", 1)
        return v

    @field_validator(
        "ARTICLE_CACHE_TTL",
        "BREAKING_NEWS_TTL",
        "FEATURED_ARTICLES_TTL",
        "POPULAR_TAGS_TTL",
        "RELATED_ARTICLES_TTL",
        "DASHBOARD_CACHE_TTL",
        "ARTICLE_STATS_CACHE_TTL",
        "TRENDING_WINDOW_HOURS",
        "ANALYTICS_WORKERS",
        "ANALYTICS_MAX_ATTEMPTS",
    )
    @classmethod
    def require_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
