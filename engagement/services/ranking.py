# engagement/services/ranking.py
"""
Content ranking.

Pure functions over candidates and their counters; nothing is persisted.

- latest:   newest first
- popular:  all-time views, newest first on ties
- trending: only content published inside the lookback window, then by views.
            Older content is excluded, not down-weighted.
"""

import logging
from collections.abc import Iterable
from datetime import datetime, timedelta

from engagement.services.types import RankCandidate, RankingCriterion, RankingStrategy

logger = logging.getLogger(__name__)

DEFAULT_TRENDING_WINDOW_HOURS = 24


def parse_criterion(sort: str | None, window_hours: int | None = None) -> RankingCriterion:
    """
    Build a criterion from the `sort` query parameter.

    Unknown or missing sort values fall back to latest.
    """
    try:
        strategy = RankingStrategy((sort or RankingStrategy.LATEST.value).strip().lower())
    except ValueError:
        logger.debug(f"Unknown sort '{sort}', falling back to latest")
        strategy = RankingStrategy.LATEST

    if strategy == RankingStrategy.TRENDING:
        return RankingCriterion.trending(window_hours or DEFAULT_TRENDING_WINDOW_HOURS)
    return RankingCriterion(strategy)


def trending_cutoff(criterion: RankingCriterion, now: datetime) -> datetime:
    return now - timedelta(hours=criterion.window_hours)


def _by_recency(c: RankCandidate) -> tuple:
    return (c.published_at, c.content_id)


def _by_views(c: RankCandidate) -> tuple:
    return (c.views_count, c.published_at, c.content_id)


def rank(criterion: RankingCriterion, candidates: Iterable[RankCandidate], now: datetime) -> list[int]:
    """
    Order candidates by criterion and return their content ids.

    Content id (descending) is the last tie-break, so equal inputs always
    produce the same order. An empty candidate set yields an empty list.
    """
    pool = list(candidates)

    if criterion.strategy == RankingStrategy.TRENDING:
        cutoff = trending_cutoff(criterion, now)
        pool = [c for c in pool if c.published_at >= cutoff]
        pool.sort(key=_by_views, reverse=True)
    elif criterion.strategy == RankingStrategy.POPULARITY:
        pool.sort(key=_by_views, reverse=True)
    else:
        pool.sort(key=_by_recency, reverse=True)

    return [c.content_id for c in pool]
