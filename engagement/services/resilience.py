"""
Resilience patterns for engagement side effects.

Provides retry logic and a circuit breaker for storage writes made by the
background worker, and a per-client rate limiter for the view ingest endpoint.
"""

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, TypeVar

from cachetools import TTLCache

logger = logging.getLogger(__name__)

T = TypeVar("T")


# -----------------------------------------------------------------------------
# Circuit Breaker
# -----------------------------------------------------------------------------


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"  # Normal operation, requests pass through
    OPEN = "open"  # Failing, requests are blocked
    HALF_OPEN = "half_open"  # Testing if storage recovered


class CircuitOpenError(Exception):
    """Raised when circuit breaker is open."""

    pass


@dataclass
class CircuitBreaker:
    """
    Circuit breaker to stop hammering storage that is down.

    When storage fails repeatedly, the circuit opens and blocks further
    writes for a cooldown period. After the cooldown, it enters half-open
    state and allows a single write to test if storage recovered.

    Thread-safe: the worker pool shares one breaker.

    Usage:
        breaker = CircuitBreaker(name="storage", failure_threshold=5)

        try:
            breaker.call(counter_service.increment, article_id)
        except CircuitOpenError:
            # Drop the side effect
            pass
    """

    name: str
    failure_threshold: int = 5
    reset_timeout_seconds: float = 30
    half_open_max_calls: int = 1
    timer: Callable[[], float] = time.monotonic

    # Internal state
    _state: CircuitState = field(default=CircuitState.CLOSED, init=False)
    _failure_count: int = field(default=0, init=False)
    _last_failure_time: float = field(default=0, init=False)
    _half_open_calls: int = field(default=0, init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    @property
    def state(self) -> CircuitState:
        """Get current circuit state, checking for timeout."""
        if self._state == CircuitState.OPEN:
            if self.timer() - self._last_failure_time >= self.reset_timeout_seconds:
                return CircuitState.HALF_OPEN
        return self._state

    def call(self, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
        """
        Execute function through the circuit breaker.

        Raises:
            CircuitOpenError: If circuit is open
            Exception: Any exception from the wrapped function
        """
        with self._lock:
            current_state = self.state

            if current_state == CircuitState.OPEN:
                raise CircuitOpenError(
                    f"Circuit '{self.name}' is open. Will retry after {self.reset_timeout_seconds}s cooldown."
                )

            if current_state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    raise CircuitOpenError(f"Circuit '{self.name}' is half-open with max test calls reached.")
                self._half_open_calls += 1

        try:
            result = func(*args, **kwargs)
        except Exception:
            with self._lock:
                was_half_open = self.state == CircuitState.HALF_OPEN
                self._failure_count += 1
                self._last_failure_time = self.timer()

                if self._failure_count >= self.failure_threshold:
                    self._state = CircuitState.OPEN
                    self._half_open_calls = 0
                    logger.warning(
                        f"Circuit '{self.name}' opened after {self._failure_count} failures. "
                        f"Cooldown: {self.reset_timeout_seconds}s"
                    )
                elif was_half_open:
                    self._state = CircuitState.OPEN
                    self._half_open_calls = 0
                    logger.warning(f"Circuit '{self.name}' reopened after half-open failure")
            raise

        with self._lock:
            self._failure_count = 0
            self._half_open_calls = 0
            if self._state != CircuitState.CLOSED:
                logger.info(f"Circuit '{self.name}' closed after successful call")
            self._state = CircuitState.CLOSED

        return result

    def reset(self) -> None:
        """Manually reset the circuit breaker."""
        with self._lock:
            self._state = CircuitState.CLOSED
            self._failure_count = 0
            self._half_open_calls = 0
        logger.info(f"Circuit '{self.name}' manually reset")


# -----------------------------------------------------------------------------
# Retry Decorator
# -----------------------------------------------------------------------------


def with_sync_retry(
    max_attempts: int = 3,
    min_wait: float = 1.0,
    max_wait: float = 30.0,
    retry_exceptions: tuple[type[Exception], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> Callable:
    """
    Decorator for sync functions with exponential backoff retry.

    Args:
        max_attempts: Maximum number of attempts
        min_wait: Wait before the second attempt (seconds); doubles each attempt
        max_wait: Maximum wait time between retries (seconds)
        retry_exceptions: Tuple of exception types to retry on
        sleep: Sleep function (injectable for tests)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        name = getattr(func, "__name__", repr(func))

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            last_exception: Exception | None = None

            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except retry_exceptions as e:
                    last_exception = e
                    if attempt == max_attempts:
                        logger.error(
                            f"{name} failed after {max_attempts} attempts: {e}",
                            extra={"event": "retry_exhausted", "attempt": attempt},
                        )
                        raise

                    wait_time = min(min_wait * (2 ** (attempt - 1)), max_wait)
                    logger.warning(
                        f"{name} attempt {attempt} failed: {e}. Retrying in {wait_time:.1f}s...",
                        extra={"event": "retry_scheduled", "attempt": attempt},
                    )
                    sleep(wait_time)

            if last_exception:
                raise last_exception
            raise RuntimeError(f"{name} failed without exception")

        return wrapper

    return decorator


# -----------------------------------------------------------------------------
# Rate Limiter
# -----------------------------------------------------------------------------


class RateLimitExceeded(Exception):
    """Raised when a client exceeds its request budget."""

    def __init__(self, retry_after: float):
        self.retry_after = retry_after
        super().__init__(f"Rate limit exceeded, retry after {retry_after:.0f}s")


@dataclass
class _Bucket:
    tokens: float
    last_update: float


@dataclass
class RateLimiter:
    """
    Per-client token bucket rate limiter.

    Each client key gets max_tokens that refill at tokens_per_second. Idle
    buckets are forgotten after idle_seconds, which resets them to full.

    Usage:
        limiter = RateLimiter(tokens_per_second=1, max_tokens=60)
        limiter.acquire(client_ip)  # raises RateLimitExceeded
    """

    tokens_per_second: float
    max_tokens: int
    idle_seconds: int = 600
    max_clients: int = 10_000
    timer: Callable[[], float] = time.monotonic

    _buckets: TTLCache = field(init=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, init=False)

    def __post_init__(self):
        self._buckets = TTLCache(maxsize=self.max_clients, ttl=self.idle_seconds, timer=self.timer)

    @classmethod
    def per_minute(cls, limit: int, **kwargs: Any) -> "RateLimiter":
        return cls(tokens_per_second=limit / 60.0, max_tokens=limit, **kwargs)

    def acquire(self, client: str, tokens: int = 1) -> float:
        """
        Take tokens from the client's bucket.

        Returns:
            Tokens remaining after this request

        Raises:
            RateLimitExceeded: If the bucket does not hold enough tokens
        """
        with self._lock:
            now = self.timer()
            bucket = self._buckets.get(client)
            if bucket is None:
                bucket = _Bucket(tokens=float(self.max_tokens), last_update=now)

            elapsed = now - bucket.last_update
            bucket.tokens = min(self.max_tokens, bucket.tokens + elapsed * self.tokens_per_second)
            bucket.last_update = now
            self._buckets[client] = bucket

            if bucket.tokens < tokens:
                needed = tokens - bucket.tokens
                raise RateLimitExceeded(retry_after=needed / self.tokens_per_second)

            bucket.tokens -= tokens
            return bucket.tokens
