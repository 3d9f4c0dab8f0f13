# engagement/services/counter_service.py
"""
Per-article view counters.

Counters are monotonically non-decreasing and owned by this service. Reads go
straight to the database; view counts are never served from the cache layer.
"""

import logging
from collections.abc import Callable, Iterable

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from engagement.models import ArticleCounter
from engagement.utils.timeutil import utcnow

logger = logging.getLogger(__name__)

# Dialects with INSERT ... ON CONFLICT DO UPDATE
_UPSERT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


class CounterService:
    """Atomic increments and live reads of ArticleCounter rows."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    def increment(self, article_id: int, by: int = 1) -> None:
        """
        Add to an article's counter, creating it at zero first if needed.

        The increment is a single atomic statement, so concurrent callers never
        lose updates. Storage errors propagate; the caller decides on retries.
        """
        if by < 1:
            raise ValueError("increment must be positive")

        db = self._session_factory()
        try:
            insert_fn = _UPSERT_INSERTS.get(db.get_bind().dialect.name)
            if insert_fn is not None:
                self._upsert(db, insert_fn, article_id, by)
            else:
                self._update_or_create(db, article_id, by)
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def current(self, article_id: int) -> int:
        """Latest applied count for an article; 0 if it has never been viewed."""
        db = self._session_factory()
        try:
            value = db.execute(
                select(ArticleCounter.views_count).where(ArticleCounter.article_id == article_id)
            ).scalar_one_or_none()
        finally:
            db.close()
        return int(value or 0)

    def current_many(self, article_ids: Iterable[int]) -> dict[int, int]:
        """Batch read. Every requested id is present in the result."""
        ids = list(dict.fromkeys(article_ids))
        if not ids:
            return {}

        db = self._session_factory()
        try:
            rows = db.execute(
                select(ArticleCounter.article_id, ArticleCounter.views_count).where(
                    ArticleCounter.article_id.in_(ids)
                )
            ).all()
        finally:
            db.close()

        counts = {article_id: 0 for article_id in ids}
        counts.update({article_id: int(views) for article_id, views in rows})
        return counts

    # -------------------------------------------------------------------------
    # Write strategies
    # -------------------------------------------------------------------------

    @staticmethod
    def _upsert(db: Session, insert_fn, article_id: int, by: int) -> None:
        now = utcnow()
        stmt = insert_fn(ArticleCounter).values(article_id=article_id, views_count=by, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[ArticleCounter.article_id],
            set_={"views_count": ArticleCounter.views_count + by, "updated_at": now},
        )
        db.execute(stmt)

    @staticmethod
    def _bump(db: Session, article_id: int, by: int) -> bool:
        result = db.execute(
            update(ArticleCounter)
            .where(ArticleCounter.article_id == article_id)
            .values(views_count=ArticleCounter.views_count + by, updated_at=utcnow())
        )
        return result.rowcount > 0

    def _update_or_create(self, db: Session, article_id: int, by: int) -> None:
        if self._bump(db, article_id, by):
            return

        db.add(ArticleCounter(article_id=article_id, views_count=by))
        try:
            db.flush()
        except IntegrityError:
            # Another writer created the row between our UPDATE and INSERT
            db.rollback()
            if not self._bump(db, article_id, by):
                raise
