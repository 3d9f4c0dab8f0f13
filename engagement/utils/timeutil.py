# engagement/utils/timeutil.py
"""
Time helpers.

All timestamps in the engagement tables are stored as naive UTC, so every
"now" in the service goes through utcnow() rather than datetime.now().
"""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)
