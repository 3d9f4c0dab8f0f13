# engagement/models.py
"""
Engagement Analytics Database Models

Tables:
- Category: Content categories (owned by the CMS, read here)
- Article: Published content (owned by the CMS, read here)
- Tag / article_tags: Content tags (owned by the CMS, read here)
- EngagementEventRow: Append-only record of content views
- ArticleCounter: One monotonically increasing view counter per article
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import relationship

from engagement.constants import ArticleStatus, EventLimits
from engagement.database import Base
from engagement.utils.timeutil import utcnow

# SQLite only autoincrements INTEGER PRIMARY KEY columns
EventId = BigInteger().with_variant(Integer, "sqlite")


# -----------------------------------------------------------------------------
# Content (CMS-owned)
# -----------------------------------------------------------------------------

article_tags = Table(
    "article_tags",
    Base.metadata,
    Column("article_id", Integer, ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False)
    slug = Column(String(128), unique=True, nullable=False)

    articles = relationship("Article", back_populates="category")


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(128), nullable=False)
    slug = Column(String(128), unique=True, nullable=False)

    articles = relationship("Article", secondary=article_tags, back_populates="tags")


class Article(Base):
    """
    Published content as seen by the analytics engine.

    Only the columns ranking, aggregation and the cached payloads need are
    mirrored here; editorial fields live with the CMS.
    """
    __tablename__ = "articles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slug = Column(String(255), unique=True, nullable=False)
    title = Column(String(255), nullable=False)
    excerpt = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(32), default=ArticleStatus.DRAFT, nullable=False)
    published_at = Column(DateTime, nullable=True)
    is_breaking = Column(Boolean, default=False, nullable=False)
    is_featured = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    category = relationship("Category", back_populates="articles", lazy="joined")
    tags = relationship("Tag", secondary=article_tags, back_populates="articles", lazy="selectin")

    __table_args__ = (
        Index("ix_articles_status_published_at", "status", "published_at"),
        Index("ix_articles_category_id", "category_id"),
    )


# -----------------------------------------------------------------------------
# Engagement
# -----------------------------------------------------------------------------

class EngagementEventRow(Base):
    """
    One content view. Write-once: rows are never updated or deleted here.

    article_id is deliberately not a foreign key so that events for articles
    the CMS later deletes are kept; aggregations join and drop them.
    """
    __tablename__ = "engagement_events"

    id = Column(EventId, primary_key=True, autoincrement=True)
    article_id = Column(Integer, nullable=False)
    session_id = Column(String(EventLimits.SESSION_ID_MAX), nullable=False)
    occurred_at = Column(DateTime, nullable=False)
    referrer = Column(Text, nullable=True)
    country = Column(String(EventLimits.COUNTRY_MAX), nullable=True)
    dwell_seconds = Column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_engagement_events_occurred_at", "occurred_at"),
        Index("ix_engagement_events_article_occurred", "article_id", "occurred_at"),
    )


class ArticleCounter(Base):
    """
    All-time view counter. Written only by CounterService.

    Not a foreign key: a view can be counted before the CMS row is visible here.
    """
    __tablename__ = "article_counters"

    article_id = Column(Integer, primary_key=True)
    views_count = Column(BigInteger, default=0, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
