# engagement/routers/engagement.py
"""
View ingestion endpoint.

POST /v1/engagement/views - Record a content view (returns 202 immediately)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from engagement.dependencies import get_dispatcher, get_view_rate_limiter
from engagement.errors import InvalidEventError
from engagement.schemas.engagement import ViewAccepted, ViewEventIn
from engagement.services.dispatcher import EngagementDispatcher
from engagement.services.resilience import RateLimiter, RateLimitExceeded
from engagement.services.types import EngagementEvent
from engagement.utils.timeutil import to_naive_utc, utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/engagement", tags=["engagement"])


def _client_key(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def enforce_view_rate_limit(
    request: Request,
    response: Response,
    limiter: RateLimiter = Depends(get_view_rate_limiter),
) -> None:
    try:
        remaining = limiter.acquire(_client_key(request))
    except RateLimitExceeded as e:
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={"message": "Too many requests. Please try again later.", "retry_after": round(e.retry_after)},
            headers={"Retry-After": str(max(1, round(e.retry_after)))},
        )
    response.headers["X-RateLimit-Limit"] = str(limiter.max_tokens)
    response.headers["X-RateLimit-Remaining"] = str(int(remaining))


@router.post("/views", response_model=ViewAccepted, status_code=status.HTTP_202_ACCEPTED)
def record_view(
    payload: ViewEventIn,
    dispatcher: EngagementDispatcher = Depends(get_dispatcher),
    _: None = Depends(enforce_view_rate_limit),
) -> ViewAccepted:
    """
    Accept a content view.

    The event append and the counter increment run in the background; this
    endpoint never waits on them and never fails because of them.
    """
    try:
        event = EngagementEvent(
            article_id=payload.article_id,
            session_id=payload.session_id,
            timestamp=to_naive_utc(payload.occurred_at) if payload.occurred_at else utcnow(),
            referrer=payload.referrer,
            country=payload.country,
            dwell_seconds=payload.dwell_seconds,
        )
    except InvalidEventError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    queued = dispatcher.submit(event)
    return ViewAccepted(article_id=event.article_id, queued=queued)
