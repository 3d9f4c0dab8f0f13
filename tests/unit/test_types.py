# tests/unit/test_types.py
"""Unit tests for engagement value types."""

from datetime import datetime

import pytest

from engagement.errors import InvalidEventError
from engagement.services.types import EngagementEvent, RankingCriterion, RankingStrategy, TimeRange

WHEN = datetime(2026, 10, 14, 12, 0)


class TestEngagementEvent:
    def test_valid_event(self):
        event = EngagementEvent(article_id=1, session_id="s", timestamp=WHEN)
        assert event.referrer is None
        assert event.dwell_seconds is None

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"article_id": 0, "session_id": "s", "timestamp": WHEN},
            {"article_id": 1, "session_id": "  ", "timestamp": WHEN},
            {"article_id": 1, "session_id": "s", "timestamp": None},
            {"article_id": 1, "session_id": "s", "timestamp": WHEN, "dwell_seconds": -1},
        ],
    )
    def test_invalid_events_rejected(self, kwargs):
        with pytest.raises(InvalidEventError):
            EngagementEvent(**kwargs)

    def test_invalid_event_is_a_value_error(self):
        with pytest.raises(ValueError):
            EngagementEvent(article_id=-3, session_id="s", timestamp=WHEN)


class TestTimeRange:
    def test_half_open(self):
        window = TimeRange(datetime(2026, 10, 14), datetime(2026, 10, 15))
        assert window.contains(datetime(2026, 10, 14))
        assert window.contains(datetime(2026, 10, 14, 23, 59, 59))
        assert not window.contains(datetime(2026, 10, 15))


class TestRankingCriterion:
    def test_trending_requires_positive_window(self):
        with pytest.raises(ValueError):
            RankingCriterion.trending(0)

    def test_factories(self):
        assert RankingCriterion.latest().strategy == RankingStrategy.LATEST
        assert RankingCriterion.popularity().strategy == RankingStrategy.POPULARITY
        assert RankingCriterion.trending(48).window_hours == 48
