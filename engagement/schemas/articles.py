# engagement/schemas/articles.py
"""
Schemas for content endpoints.

GET /v1/articles                  - Ranked, filtered content list
GET /v1/articles/breaking         - Breaking news rail
GET /v1/articles/featured         - Featured rail
GET /v1/articles/{slug}           - Single article with related content
GET /v1/tags/popular              - Most used tags
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class TagOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str


class ArticleSummary(BaseModel):
    """An article as shown in lists and rails."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    slug: str
    title: str
    excerpt: str | None = None
    category: CategoryOut | None = None
    published_at: datetime | None = None
    is_breaking: bool = False
    is_featured: bool = False


class ArticleDetail(ArticleSummary):
    """Full article payload. Cached except for views_count, which is read live."""

    tags: list[TagOut] = Field(default_factory=list)
    views_count: int = Field(0, description="All-time views, read live from the counter")


class ArticleDetailResponse(BaseModel):
    article: ArticleDetail
    related: list[ArticleSummary] = Field(default_factory=list)


class ArticleListResponse(BaseModel):
    """Ranked content ids with their summaries, in ranked order."""

    ids: list[int] = Field(default_factory=list, description="Ranked content IDs for this page")
    items: list[ArticleSummary] = Field(default_factory=list)
    sort: str = Field(..., description="latest, popular or trending")
    window_hours: int | None = Field(None, description="Trending lookback window, when sort=trending")
    total: int = Field(..., description="Total ranked items across pages")
    page: int
    per_page: int


class PopularTag(BaseModel):
    id: int
    name: str
    slug: str
    articles_count: int


class InvalidationResponse(BaseModel):
    article_id: int
    evicted: int = Field(..., description="Number of cache entries evicted")
