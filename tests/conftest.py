# tests/conftest.py
"""
Pytest configuration and fixtures.

Service tests run against a file-backed SQLite database per test so the
worker-pool and concurrency tests get one connection per thread.
"""

import os
from datetime import datetime, timedelta

import pytest

# Set test environment before importing engagement.database
os.environ.setdefault("TESTING", "1")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_JSON", "false")

from sqlalchemy.orm import sessionmaker  # noqa: E402

from engagement import models  # noqa: E402
from engagement.constants import ArticleStatus  # noqa: E402
from engagement.database import Base, build_engine  # noqa: E402
from engagement.services.types import EngagementEvent  # noqa: E402

# Wednesday afternoon; the calendar week started Monday 2026-10-12
NOW = datetime(2026, 10, 14, 15, 30)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def engine(tmp_path):
    eng = build_engine(f"sqlite:///{tmp_path / 'engagement.db'}")
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def content(db):
    """
    Seed categories, tags and articles.

    Returns a dict of slug -> article id.
    """
    politics = models.Category(name="Politics", slug="politics")
    sports = models.Category(name="Sports", slug="sports")
    elections = models.Tag(name="Elections", slug="elections")
    football = models.Tag(name="Football", slug="football")
    economy = models.Tag(name="Economy", slug="economy")
    db.add_all([politics, sports, elections, football, economy])

    def article(slug, category, published_at, status=ArticleStatus.PUBLISHED, tags=(), **flags):
        return models.Article(
            slug=slug,
            title=slug.replace("-", " ").title(),
            excerpt=f"About {slug.replace('-', ' ')}",
            category=category,
            status=status,
            published_at=published_at,
            tags=list(tags),
            **flags,
        )

    db.add_all(
        [
            article("election-results", politics, NOW - timedelta(hours=2), tags=[elections], is_breaking=True),
            article("budget-vote", politics, NOW - timedelta(hours=30), tags=[economy, elections], is_featured=True),
            article("cup-final", sports, NOW - timedelta(hours=5), tags=[football], is_featured=True),
            article("transfer-news", sports, NOW - timedelta(days=3), tags=[football]),
            article("draft-piece", politics, None, status=ArticleStatus.DRAFT),
            article("scheduled-piece", politics, NOW + timedelta(hours=1)),
        ]
    )
    db.commit()

    return {a.slug: a.id for a in db.query(models.Article).all()}


def make_event(article_id, session_id="s1", when=NOW, referrer=None, country=None, dwell=None):
    return EngagementEvent(
        article_id=article_id,
        session_id=session_id,
        timestamp=when,
        referrer=referrer,
        country=country,
        dwell_seconds=dwell,
    )


@pytest.fixture
def event_factory():
    return make_event
