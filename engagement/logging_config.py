"""
Structured JSON logging for engagement analytics.

Provides structured logging with trace IDs for correlating a request with the
background side effects it dispatches, plus a timing context manager for
aggregation and cache computations.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variables for trace correlation
trace_id_var: ContextVar[str | None] = ContextVar("trace_id", default=None)

# Extra record attributes copied into the JSON payload
EXTRA_FIELDS = (
    "event",
    "duration_ms",
    "operation",
    "article_id",
    "session_id",
    "cache_key",
    "period",
    "criterion",
    "attempt",
    "dimensions",
    "total_views",
    "dropped",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "trace_id": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        trace_id = getattr(record, "trace_id", None) or trace_id_var.get()
        if trace_id:
            log_data["trace_id"] = trace_id

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)


def set_trace_id(trace_id: str | None) -> None:
    trace_id_var.set(trace_id)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_operation(operation: str, logger_name: str = "engagement", **fields):
    """
    Time an operation and log its completion or failure.

    Completion is logged at DEBUG so hot paths (cache fills, rollups) stay quiet
    in production; failures are always logged at ERROR and re-raised.

    Usage:
        with log_operation("aggregate", period="week"):
            result = aggregator.aggregate(...)
    """
    logger = logging.getLogger(logger_name)
    start_time = time.perf_counter()

    try:
        yield
    except Exception as e:
        duration_ms = int((time.perf_counter() - start_time) * 1000)
        logger.error(
            f"{operation} failed: {e}",
            extra={"event": f"{operation}_failed", "operation": operation, "duration_ms": duration_ms, **fields},
        )
        raise

    duration_ms = int((time.perf_counter() - start_time) * 1000)
    logger.debug(
        f"{operation} completed in {duration_ms}ms",
        extra={"event": f"{operation}_complete", "operation": operation, "duration_ms": duration_ms, **fields},
    )
