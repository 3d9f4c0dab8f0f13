# tests/unit/test_config.py
"""Unit tests for settings validation."""

import pytest
from pydantic import ValidationError

from engagement.config import Settings


def _settings(**overrides):
    values = {"DATABASE_URL": "sqlite://", **overrides}
    return Settings(_env_file=None, **values)


class TestSettings:
    def test_postgres_url_gets_driver(self):
        settings = _settings(DATABASE_URL="postgresql://u:p@db:5432/engagement")
        assert settings.DATABASE_URL == "postgresql+psycopg2://u:p@db:5432/engagement"

    def test_defaults(self):
        settings = _settings()
        assert settings.ARTICLE_CACHE_TTL == 3600
        assert settings.BREAKING_NEWS_TTL == 300
        assert settings.FEATURED_ARTICLES_TTL == 600
        assert settings.POPULAR_TAGS_TTL == 3600
        assert settings.TRENDING_WINDOW_HOURS == 24

    @pytest.mark.parametrize("field", ["DASHBOARD_CACHE_TTL", "TRENDING_WINDOW_HOURS", "ANALYTICS_WORKERS"])
    def test_rejects_non_positive(self, field):
        with pytest.raises(ValidationError):
            _settings(**{field: 0})

    def test_cors_origin_list(self):
        settings = _settings(CORS_ORIGINS="https://a.example, https://b.example,,")
        assert settings.cors_origin_list == ["https://a.example", "https://b.example"]
