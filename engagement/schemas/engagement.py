# engagement/schemas/engagement.py
"""
Schemas for view ingestion.

POST /v1/engagement/views - Record a content view
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from engagement.constants import EventLimits


class ViewEventIn(BaseModel):
    """A content view reported by the content-management layer or the browser."""

    article_id: int = Field(..., gt=0, description="Viewed article ID")
    session_id: str = Field(
        ..., min_length=1, max_length=EventLimits.SESSION_ID_MAX, description="Visitor session ID"
    )
    referrer: str | None = Field(None, max_length=EventLimits.REFERRER_MAX, description="Referer header, if any")
    country: str | None = Field(
        None,
        min_length=EventLimits.COUNTRY_MIN,
        max_length=EventLimits.COUNTRY_MAX,
        description="ISO country code, if known",
    )
    dwell_seconds: int | None = Field(None, ge=0, description="Seconds spent on the page, if reported")
    occurred_at: datetime | None = Field(None, description="When the view happened; defaults to receipt time")

    @field_validator("session_id")
    @classmethod
    def strip_session(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("session_id must not be blank")
        return v


class ViewAccepted(BaseModel):
    """Acknowledgement; persistence happens in the background."""

    status: str = Field("accepted", description="Always 'accepted' when queued")
    article_id: int
    queued: bool = Field(..., description="False if the worker pool was shutting down")
