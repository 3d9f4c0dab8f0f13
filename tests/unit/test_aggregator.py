# tests/unit/test_aggregator.py
"""
Unit tests for engagement rollups.

Covers:
- Period resolution (calendar windows, default trailing 7 days)
- Referrer classification and source ordering
- Totals, uniques, categories, trend buckets, geo and dwell over the event store
- Top articles by all-time counter and by in-window views
"""

from datetime import date, datetime, timedelta

import pytest

from engagement.constants import TrafficSources
from engagement.services.aggregator import (
    ALL_TIME,
    Aggregator,
    classify_referrer,
    resolve_period,
    summarize_sources,
)
from engagement.services.counter_service import CounterService
from engagement.services.event_store import EventStore
from engagement.services.types import Dimension, TimeRange


@pytest.fixture
def aggregator(session_factory, clock):
    return Aggregator(session_factory, clock=clock)


@pytest.fixture
def store(session_factory):
    return EventStore(session_factory)


class TestResolvePeriod:
    def test_today(self, now):
        window = resolve_period("today", now)
        assert window.start == datetime(2026, 10, 14)
        assert window.end == datetime(2026, 10, 15)
        assert window.label == "today"

    def test_week_starts_monday(self, now):
        window = resolve_period("week", now)
        assert window.start == datetime(2026, 10, 12)
        assert window.end == datetime(2026, 10, 19)

    def test_month(self, now):
        window = resolve_period("month", now)
        assert window.start == datetime(2026, 10, 1)
        assert window.end == datetime(2026, 11, 1)

    def test_december_month_rolls_year(self):
        window = resolve_period("month", datetime(2026, 12, 20, 8))
        assert window.end == datetime(2027, 1, 1)

    def test_year(self, now):
        window = resolve_period("year", now)
        assert window.start == datetime(2026, 1, 1)
        assert window.end == datetime(2027, 1, 1)

    @pytest.mark.parametrize("period", [None, "", "quarter", "TODAY"])
    def test_unknown_is_trailing_seven_days(self, period, now):
        window = resolve_period(period, now)
        assert window.start == now - timedelta(days=7)
        assert window.end == now
        assert window.label == "default"


class TestTrafficSources:
    @pytest.mark.parametrize(
        "referrer,label",
        [
            ("https://www.google.com/search?q=x", TrafficSources.GOOGLE),
            ("https://GOOGLE.co.uk", TrafficSources.GOOGLE),
            ("https://m.facebook.com/story", TrafficSources.FACEBOOK),
            ("https://twitter.com/someone", TrafficSources.TWITTER),
            (None, TrafficSources.DIRECT),
            ("", TrafficSources.DIRECT),
            ("   ", TrafficSources.DIRECT),
            ("https://news.ycombinator.com", TrafficSources.OTHER),
        ],
    )
    def test_classify(self, referrer, label):
        assert classify_referrer(referrer) == label

    def test_first_matching_rule_wins(self):
        assert classify_referrer("https://facebook.com/?from=google") == TrafficSources.GOOGLE

    def test_summary_orders_by_count_then_priority(self):
        summary = summarize_sources(
            [
                ("https://google.com", 2),
                ("https://news.ycombinator.com", 1),
                (None, 1),
                ("https://facebook.com", 1),
            ]
        )
        assert summary == {"Google": 2, "Facebook": 1, "Direct": 1, "Other Referrals": 1}
        assert list(summary) == ["Google", "Facebook", "Direct", "Other Referrals"]


class TestAggregate:
    def test_empty_window_yields_zeros(self, aggregator):
        result = aggregator.aggregate(aggregator.window_for("today"))
        assert result.total_views == 0
        assert result.unique_sessions == 0
        assert result.per_category == {}
        assert result.per_source == {}
        assert result.trend_series == []
        assert result.per_article_geo == {}
        assert result.avg_dwell_seconds == 0.0

    def test_traffic_sources(self, aggregator, store, content, event_factory):
        article = content["election-results"]
        for i, referrer in enumerate(
            [
                "https://www.google.com/search",
                "https://google.com/",
                "https://facebook.com/post",
                None,
                "https://news.ycombinator.com",
            ]
        ):
            store.record(event_factory(article, f"s{i}", referrer=referrer))

        result = aggregator.aggregate(aggregator.window_for("today"), {Dimension.SOURCE})
        assert result.per_source == {"Google": 2, "Facebook": 1, "Direct": 1, "Other Referrals": 1}
        assert sum(result.per_source.values()) == 5

    def test_average_dwell_ignores_missing_and_zero(self, aggregator, store, content, event_factory):
        article = content["cup-final"]
        for i, dwell in enumerate([10, 20, None, 0]):
            store.record(event_factory(article, f"s{i}", dwell=dwell))

        result = aggregator.aggregate(ALL_TIME, {Dimension.DWELL}, article_id=article)
        assert result.avg_dwell_seconds == 15.0

    def test_trend_buckets_by_date_and_hour(self, aggregator, store, content, event_factory, now):
        article = content["cup-final"]
        day = now.replace(hour=0, minute=0)
        store.record(event_factory(article, "a", when=day.replace(hour=14, minute=5)))
        store.record(event_factory(article, "b", when=day.replace(hour=14, minute=40)))
        store.record(event_factory(article, "c", when=day.replace(hour=15, minute=10)))

        result = aggregator.aggregate(aggregator.window_for("today"), {Dimension.TREND})

        assert [(p.date, p.hour, p.views) for p in result.trend_series] == [
            (date(2026, 10, 14), 14, 2),
            (date(2026, 10, 14), 15, 1),
        ]

    def test_uniques_never_exceed_total(self, aggregator, store, content, event_factory):
        article = content["election-results"]
        for session in ["a", "a", "b", "a", "c"]:
            store.record(event_factory(article, session))

        result = aggregator.aggregate(aggregator.window_for("today"), {Dimension.TOTALS, Dimension.UNIQUES})
        assert result.total_views == 5
        assert result.unique_sessions == 3

    def test_window_is_half_open(self, aggregator, store, content, event_factory, now):
        article = content["election-results"]
        midnight = now.replace(hour=0, minute=0)
        store.record(event_factory(article, "a", when=midnight))
        store.record(event_factory(article, "b", when=midnight - timedelta(microseconds=1)))
        store.record(event_factory(article, "c", when=midnight + timedelta(days=1)))

        result = aggregator.aggregate(aggregator.window_for("today"), {Dimension.TOTALS})
        assert result.total_views == 1

    def test_views_by_category(self, aggregator, store, content, event_factory):
        store.record(event_factory(content["election-results"], "a"))
        store.record(event_factory(content["budget-vote"], "b"))
        store.record(event_factory(content["cup-final"], "c"))
        # Deleted article: no category, not attributed
        store.record(event_factory(9999, "d"))

        result = aggregator.aggregate(aggregator.window_for("today"), {Dimension.CATEGORY, Dimension.TOTALS})
        assert result.per_category == {"Politics": 2, "Sports": 1}
        assert result.total_views == 4

    def test_geo_distribution(self, aggregator, store, content, event_factory):
        article = content["cup-final"]
        for i, country in enumerate(["us", "GB", "US", None, "de", "gb", "US"]):
            store.record(event_factory(article, f"s{i}", country=country))

        result = aggregator.aggregate(ALL_TIME, {Dimension.GEO}, article_id=article)
        assert result.per_article_geo == {"US": 3, "GB": 2, "DE": 1}
        assert list(result.per_article_geo) == ["US", "GB", "DE"]

    def test_article_filter(self, aggregator, store, content, event_factory):
        store.record(event_factory(content["cup-final"], "a"))
        store.record(event_factory(content["election-results"], "b"))

        result = aggregator.aggregate(ALL_TIME, {Dimension.TOTALS}, article_id=content["cup-final"])
        assert result.total_views == 1

    def test_unrequested_dimensions_stay_empty(self, aggregator, store, content, event_factory):
        store.record(event_factory(content["cup-final"], "a", referrer="https://google.com", country="US"))

        result = aggregator.aggregate(ALL_TIME, {Dimension.TOTALS})
        assert result.total_views == 1
        assert result.per_source == {}
        assert result.per_article_geo == {}


class TestTopArticles:
    def test_all_time_scope_ranks_window_publications_by_counter(self, aggregator, session_factory, content):
        counters = CounterService(session_factory)
        counters.increment(content["cup-final"], by=5)
        counters.increment(content["election-results"], by=3)
        counters.increment(content["transfer-news"], by=50)

        top = aggregator.top_articles(aggregator.window_for("today"))

        # transfer-news was published before today; scheduled-piece is not live yet
        assert [a.slug for a in top] == ["cup-final", "election-results"]
        assert [a.views for a in top] == [5, 3]
        assert top[0].category == "Sports"

    def test_ties_go_to_most_recent(self, aggregator, content):
        top = aggregator.top_articles(aggregator.window_for("week"))
        assert [a.slug for a in top] == ["election-results", "cup-final", "budget-vote"]
        assert all(a.views == 0 for a in top)

    def test_window_scope_counts_in_window_views(self, aggregator, store, content, event_factory, now):
        store.record(event_factory(content["transfer-news"], "a"))
        store.record(event_factory(content["transfer-news"], "b"))
        store.record(event_factory(content["cup-final"], "c"))
        store.record(event_factory(content["cup-final"], "d", when=now - timedelta(days=2)))

        top = aggregator.top_articles(aggregator.window_for("today"), scope="window")
        assert [(a.slug, a.views) for a in top] == [("transfer-news", 2), ("cup-final", 1)]

    def test_limit(self, aggregator, content):
        assert len(aggregator.top_articles(aggregator.window_for("year"), limit=2)) == 2
        assert aggregator.top_articles(aggregator.window_for("year"), limit=0) == []

    def test_unknown_scope(self, aggregator):
        with pytest.raises(ValueError):
            aggregator.top_articles(TimeRange(datetime(2026, 1, 1), datetime(2027, 1, 1)), scope="bogus")
