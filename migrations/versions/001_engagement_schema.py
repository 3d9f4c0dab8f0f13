"""Engagement analytics schema

Revision ID: 001_engagement
Revises:
Create Date: 2026-10-17

Creates the CMS content mirror (categories, tags, articles, article_tags)
and the engagement tables (append-only events, all-time counters).
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_engagement'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('slug', sa.String(128), unique=True, nullable=False),
    )

    op.create_table(
        'tags',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(128), nullable=False),
        sa.Column('slug', sa.String(128), unique=True, nullable=False),
    )

    op.create_table(
        'articles',
        sa.Column('id', sa.Integer, primary_key=True, autoincrement=True),
        sa.Column('slug', sa.String(255), unique=True, nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('excerpt', sa.Text, nullable=True),
        sa.Column('category_id', sa.Integer, sa.ForeignKey('categories.id', ondelete='SET NULL'), nullable=True),
        sa.Column('status', sa.String(32), nullable=False, server_default='draft'),
        sa.Column('published_at', sa.DateTime, nullable=True),
        sa.Column('is_breaking', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('is_featured', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )
    op.create_index('ix_articles_status_published_at', 'articles', ['status', 'published_at'])
    op.create_index('ix_articles_category_id', 'articles', ['category_id'])

    op.create_table(
        'article_tags',
        sa.Column('article_id', sa.Integer, sa.ForeignKey('articles.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('tag_id', sa.Integer, sa.ForeignKey('tags.id', ondelete='CASCADE'), primary_key=True),
    )

    # Append-only; article_id is not a foreign key so history survives CMS deletes
    op.create_table(
        'engagement_events',
        sa.Column('id', sa.BigInteger, primary_key=True, autoincrement=True),
        sa.Column('article_id', sa.Integer, nullable=False),
        sa.Column('session_id', sa.String(128), nullable=False),
        sa.Column('occurred_at', sa.DateTime, nullable=False),
        sa.Column('referrer', sa.Text, nullable=True),
        sa.Column('country', sa.String(8), nullable=True),
        sa.Column('dwell_seconds', sa.Integer, nullable=True),
    )
    op.create_index('ix_engagement_events_occurred_at', 'engagement_events', ['occurred_at'])
    op.create_index('ix_engagement_events_article_occurred', 'engagement_events', ['article_id', 'occurred_at'])

    op.create_table(
        'article_counters',
        sa.Column('article_id', sa.Integer, primary_key=True),
        sa.Column('views_count', sa.BigInteger, nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime, nullable=True),
    )


def downgrade() -> None:
    op.drop_table('article_counters')
    op.drop_index('ix_engagement_events_article_occurred', table_name='engagement_events')
    op.drop_index('ix_engagement_events_occurred_at', table_name='engagement_events')
    op.drop_table('engagement_events')
    op.drop_table('article_tags')
    op.drop_index('ix_articles_category_id', table_name='articles')
    op.drop_index('ix_articles_status_published_at', table_name='articles')
    op.drop_table('articles')
    op.drop_table('tags')
    op.drop_table('categories')
