# engagement/services/dispatcher.py
"""
Background dispatch of view side effects.

A content view must never wait on analytics persistence. The dispatcher hands
each view to a worker pool that appends the event and increments the article
counter. Each side effect is attempted independently, retried with backoff,
and dropped (logged) when storage keeps failing. Retries can re-apply a write
that actually landed, so delivery is at-least-once.
"""

import contextvars
import logging
import threading
import time
from collections import Counter
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from engagement.services.counter_service import CounterService
from engagement.services.event_store import EventStore
from engagement.services.resilience import CircuitBreaker, CircuitOpenError, with_sync_retry
from engagement.services.types import EngagementEvent

logger = logging.getLogger(__name__)

# Transient storage errors worth another attempt. Data and integrity errors
# fail the same way every time and are not retried.
STORAGE_RETRY_EXCEPTIONS = (OperationalError, InterfaceError, PoolTimeoutError, ConnectionError, TimeoutError)


class EngagementDispatcher:
    """
    Fire-and-forget worker pool for event appends and counter increments.

    Usage:
        dispatcher = EngagementDispatcher(event_store, counters, max_workers=4)
        dispatcher.submit(event)      # returns immediately
        ...
        dispatcher.shutdown()         # on application shutdown
    """

    def __init__(
        self,
        event_store: EventStore,
        counters: CounterService,
        max_workers: int = 4,
        max_attempts: int = 3,
        min_wait: float = 0.2,
        max_wait: float = 5.0,
        breaker: CircuitBreaker | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        retry = with_sync_retry(
            max_attempts=max_attempts,
            min_wait=min_wait,
            max_wait=max_wait,
            retry_exceptions=STORAGE_RETRY_EXCEPTIONS,
            sleep=sleep,
        )
        self._record = retry(event_store.record)
        self._increment = retry(counters.increment)
        self._breaker = breaker or CircuitBreaker(name="engagement-storage")
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="engagement")
        self._pending: set[Future] = set()
        self._lock = threading.Lock()
        self._stats: Counter = Counter()
        self._closed = False

    def submit(self, event: EngagementEvent) -> bool:
        """
        Queue the side effects for one view. Never raises.

        Returns:
            False if the dispatcher is shut down and the view was dropped
        """
        ctx = contextvars.copy_context()
        with self._lock:
            if self._closed:
                self._stats["dropped"] += 1
                logger.warning(
                    "Dispatcher closed, dropping view",
                    extra={"event": "engagement_dropped", "article_id": event.article_id},
                )
                return False
            # The append and the increment are separate tasks so neither
            # waits on the other's retries. A Context can only be entered by
            # one thread at a time, so each task gets its own copy.
            futures = [
                self._executor.submit(ctx.run, self._apply, "recorded", self._record, event, event),
                self._executor.submit(
                    ctx.copy().run, self._apply, "incremented", self._increment, event.article_id, event
                ),
            ]
            self._pending.update(futures)
            self._stats["submitted"] += 1

        for future in futures:
            future.add_done_callback(self._forget)
        return True

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for queued side effects. Returns True if all finished in time."""
        with self._lock:
            pending = list(self._pending)
        if not pending:
            return True
        _, not_done = wait(pending, timeout=timeout)
        # Done callbacks can run after wait() returns
        with self._lock:
            self._pending.difference_update(f for f in pending if f.done())
        return not not_done

    def shutdown(self, wait_for_pending: bool = True) -> None:
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait_for_pending)
        logger.info("Engagement dispatcher stopped", extra={"event": "dispatcher_stopped"})

    def stats(self) -> dict:
        with self._lock:
            return {
                "submitted": self._stats["submitted"],
                "recorded": self._stats["recorded"],
                "incremented": self._stats["incremented"],
                "failed": self._stats["failed"],
                "dropped": self._stats["dropped"],
                "pending": len(self._pending),
                "circuit": self._breaker.state.value,
            }

    # -------------------------------------------------------------------------
    # Worker side
    # -------------------------------------------------------------------------

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _apply(self, outcome: str, func: Callable[[Any], Any], arg: Any, event: EngagementEvent) -> None:
        try:
            self._breaker.call(func, arg)
        except CircuitOpenError as e:
            self._bump("dropped")
            logger.warning(
                f"Storage circuit open, dropping {outcome} side effect: {e}",
                extra={"event": "engagement_dropped", "article_id": event.article_id, "operation": outcome},
            )
        except Exception as e:
            self._bump("failed")
            logger.error(
                f"Engagement side effect failed for article {event.article_id}: {e}",
                extra={"event": "engagement_side_effect_failed", "article_id": event.article_id, "operation": outcome},
                exc_info=True,
            )
        else:
            self._bump(outcome)

    def _bump(self, name: str) -> None:
        with self._lock:
            self._stats[name] += 1
