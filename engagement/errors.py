# engagement/errors.py
"""
Domain exceptions for the engagement engine.

Routers translate these into HTTP responses; services raise them.
"""


class EngagementError(Exception):
    """Base class for engagement engine errors."""

    pass


class InvalidEventError(EngagementError, ValueError):
    """Raised when an engagement event is missing required fields or is malformed."""

    pass


class ArticleNotFoundError(EngagementError):
    """Raised when an article does not exist or is not published."""

    def __init__(self, identifier):
        self.identifier = identifier
        super().__init__(f"Article not found: {identifier}")
