# tests/unit/test_content_service.py
"""
Unit tests for ContentService.

Covers:
- Article payloads are cached by slug; view counts are read live
- Drafts and scheduled articles are not served, and misses are not cached
- CMS change hook evicts cached payloads
- Curated lists and popular tags
- Ranked listing with filters and pagination
"""

from datetime import date

import pytest

from engagement import models
from engagement.errors import ArticleNotFoundError
from engagement.services.cache import SingleFlightCache, cache_key
from engagement.services.content_service import ContentFilters, ContentService
from engagement.services.counter_service import CounterService
from engagement.services.types import RankingCriterion


@pytest.fixture
def cache():
    return SingleFlightCache()


@pytest.fixture
def counters(session_factory):
    return CounterService(session_factory)


@pytest.fixture
def service(db, cache, counters, clock, content):
    return ContentService(db, cache, counters, clock=clock)


class TestGetArticle:
    def test_payload_and_related(self, service):
        result = service.get_article("election-results")

        assert result.article.slug == "election-results"
        assert result.article.category.slug == "politics"
        assert [t.slug for t in result.article.tags] == ["elections"]
        # Same category, published and live, excluding the article itself
        assert [r.slug for r in result.related] == ["budget-vote"]

    def test_views_count_is_live(self, service, counters, content):
        article_id = content["cup-final"]
        assert service.get_article("cup-final").article.views_count == 0

        counters.increment(article_id)
        counters.increment(article_id)

        assert service.get_article("cup-final").article.views_count == 2

    def test_payload_is_cached(self, service, db, content, cache):
        service.get_article("cup-final")

        article = db.get(models.Article, content["cup-final"])
        article.title = "Edited Title"
        db.commit()

        assert service.get_article("cup-final").article.title == "Cup Final"
        assert cache.get(cache_key("article", "cup-final")) is not None

    @pytest.mark.parametrize("slug", ["draft-piece", "scheduled-piece", "no-such-article"])
    def test_unpublished_is_not_found_and_not_cached(self, service, cache, slug):
        with pytest.raises(ArticleNotFoundError):
            service.get_article(slug)
        assert cache.get(cache_key("article", slug)) is None


class TestArticleChanged:
    def test_evicts_payload_and_related(self, service, db, content):
        article_id = content["cup-final"]
        service.get_article("cup-final")

        article = db.get(models.Article, article_id)
        article.title = "Edited Title"
        db.commit()

        assert service.article_changed(article_id) == 2
        assert service.get_article("cup-final").article.title == "Edited Title"

    def test_renamed_slug_evicts_old_key(self, service, db, content, cache):
        article_id = content["cup-final"]
        service.get_article("cup-final")

        article = db.get(models.Article, article_id)
        article.slug = "cup-final-report"
        db.commit()

        service.article_changed(article_id, slug="cup-final")
        assert cache.get(cache_key("article", "cup-final")) is None
        with pytest.raises(ArticleNotFoundError):
            service.get_article("cup-final")

    def test_nothing_cached(self, service, content):
        assert service.article_changed(content["budget-vote"]) == 0


class TestCuratedLists:
    def test_breaking_news(self, service):
        assert [a.slug for a in service.breaking_news()] == ["election-results"]

    def test_featured_newest_first(self, service):
        assert [a.slug for a in service.featured_articles()] == ["cup-final", "budget-vote"]

    def test_lists_are_cached(self, service, db, content):
        service.breaking_news()
        article = db.get(models.Article, content["cup-final"])
        article.is_breaking = True
        db.commit()

        assert [a.slug for a in service.breaking_news()] == ["election-results"]

    def test_popular_tags(self, service):
        tags = service.popular_tags()
        assert [(t.slug, t.articles_count) for t in tags] == [
            ("elections", 2),
            ("football", 2),
            ("economy", 1),
        ]


class TestListContent:
    @pytest.fixture
    def views(self, counters, content):
        counters.increment(content["transfer-news"], by=10)
        counters.increment(content["budget-vote"], by=10)
        counters.increment(content["cup-final"], by=1)

    def _slugs(self, response):
        return [a.slug for a in response.items]

    def test_latest(self, service):
        response = service.list_content(ContentFilters(), RankingCriterion.latest())
        assert self._slugs(response) == ["election-results", "cup-final", "budget-vote", "transfer-news"]
        assert response.total == 4
        assert response.sort == "latest"
        assert response.window_hours is None

    def test_popular(self, service, views):
        response = service.list_content(ContentFilters(), RankingCriterion.popularity())
        assert self._slugs(response) == ["budget-vote", "transfer-news", "cup-final", "election-results"]

    def test_trending_excludes_outside_window(self, service, views):
        response = service.list_content(ContentFilters(), RankingCriterion.trending(24))
        assert self._slugs(response) == ["cup-final", "election-results"]
        assert response.window_hours == 24

        wider = service.list_content(ContentFilters(), RankingCriterion.trending(48))
        assert self._slugs(wider) == ["budget-vote", "cup-final", "election-results"]

    def test_counts_are_not_cached(self, service, counters, content, views):
        first = service.list_content(ContentFilters(), RankingCriterion.popularity())
        counters.increment(content["election-results"], by=50)
        second = service.list_content(ContentFilters(), RankingCriterion.popularity())

        assert first.ids[0] == content["budget-vote"]
        assert second.ids[0] == content["election-results"]

    def test_ids_match_items(self, service, content):
        response = service.list_content(ContentFilters(), RankingCriterion.latest())
        assert response.ids == [a.id for a in response.items]

    @pytest.mark.parametrize(
        "filters,expected",
        [
            (ContentFilters(category="sports"), ["cup-final", "transfer-news"]),
            (ContentFilters(tag="elections"), ["election-results", "budget-vote"]),
            (ContentFilters(search="CUP"), ["cup-final"]),
            (ContentFilters(date_from=date(2026, 10, 13)), ["election-results", "cup-final", "budget-vote"]),
            (ContentFilters(date_to=date(2026, 10, 13)), ["budget-vote", "transfer-news"]),
            (ContentFilters(category="politics", tag="economy"), ["budget-vote"]),
            (ContentFilters(category="weather"), []),
        ],
    )
    def test_filters(self, service, filters, expected):
        response = service.list_content(filters, RankingCriterion.latest())
        assert self._slugs(response) == expected

    def test_pagination(self, service):
        page_two = service.list_content(ContentFilters(), RankingCriterion.latest(), page=2, per_page=2)
        assert self._slugs(page_two) == ["budget-vote", "transfer-news"]
        assert page_two.total == 4

        beyond = service.list_content(ContentFilters(), RankingCriterion.latest(), page=5, per_page=2)
        assert beyond.ids == []
        assert beyond.total == 4
