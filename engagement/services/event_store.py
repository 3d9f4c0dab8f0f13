# engagement/services/event_store.py
"""
Append-only store for engagement events.

No aggregation logic lives here. Duplicate events are stored as-is; distinct
session counting is the aggregator's job.
"""

import logging
from collections.abc import Callable, Iterable

from sqlalchemy.orm import Session

from engagement import models
from engagement.services.types import EngagementEvent

logger = logging.getLogger(__name__)


def _to_row(event: EngagementEvent) -> models.EngagementEventRow:
    return models.EngagementEventRow(
        article_id=event.article_id,
        session_id=event.session_id,
        occurred_at=event.timestamp,
        referrer=event.referrer,
        country=event.country.upper() if event.country else None,
        dwell_seconds=event.dwell_seconds,
    )


class EventStore:
    """Writes engagement events, each call in its own transaction."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def record(self, event: EngagementEvent) -> None:
        """Append one event atomically. Storage errors propagate to the caller."""
        self.record_many([event])

    def record_many(self, events: Iterable[EngagementEvent]) -> int:
        """Append a batch of events in one transaction. Returns the number written."""
        rows = [_to_row(e) for e in events]
        if not rows:
            return 0

        db = self._session_factory()
        try:
            db.add_all(rows)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

        logger.debug(f"Recorded {len(rows)} engagement event(s)", extra={"event": "events_recorded"})
        return len(rows)
