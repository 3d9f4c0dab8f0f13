# engagement/services/cache.py
"""
Single-flight TTL cache for expensive projections.

Cached values live in a cachetools.TLRUCache so every entry carries its own TTL.
Misses are computed by exactly one caller per key (the leader); concurrent
callers for the same key block on the leader's future and receive its value or
its exception. Unrelated keys never wait on each other.
"""

import logging
import threading
import time
from collections import Counter
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, TypeVar

from cachetools import TLRUCache

from engagement.logging_config import log_operation

logger = logging.getLogger(__name__)

T = TypeVar("T")


def cache_key(namespace: str, *parts: Any, **params: Any) -> str:
    """
    Build a deterministic cache key.

    Positional parts keep their order; keyword params are sorted by name so
    call-site argument order never changes the key.

        cache_key("article", "my-slug")              -> "article:my-slug"
        cache_key("dashboard", period="week", n=10)  -> "dashboard|n=10|period=week"
    """
    key = ":".join([namespace, *("" if p is None else str(p) for p in parts)])
    if params:
        key += "|" + "|".join(f"{name}={'' if params[name] is None else params[name]}" for name in sorted(params))
    return key


@dataclass
class CacheEntry:
    """A cached projection and when it was computed (timer units, seconds)."""

    key: str
    value: Any
    computed_at: float
    ttl: float
    in_flight: bool = False

    @property
    def expires_at(self) -> float:
        return self.computed_at + self.ttl


def _entry_expiry(key: str, entry: CacheEntry, now: float) -> float:
    return now + entry.ttl


class SingleFlightCache:
    """
    Thread-safe cache with per-key single-flight computation.

    Usage:
        cache = SingleFlightCache(maxsize=1024)
        payload = cache.get_or_compute("article:my-slug", 3600, lambda: load(slug))
    """

    def __init__(self, maxsize: int = 2048, timer: Callable[[], float] = time.monotonic):
        self._timer = timer
        self._entries: TLRUCache = TLRUCache(maxsize=maxsize, ttu=_entry_expiry, timer=timer)
        self._in_flight: dict[str, Future] = {}
        self._invalidated_in_flight: set[str] = set()
        self._lock = threading.Lock()
        self._stats: Counter = Counter()

    def get_or_compute(
        self,
        key: str,
        ttl: float,
        compute_fn: Callable[[], T],
        timeout: float | None = None,
    ) -> T:
        """
        Return the cached value for key, computing it at most once if missing.

        Args:
            key: Deterministic cache key (see cache_key())
            ttl: Seconds the computed value stays valid
            compute_fn: Zero-argument callable producing the value
            timeout: How long a waiter blocks on another caller's computation.
                Giving up only affects this caller; the computation keeps going.

        Raises:
            Whatever compute_fn raised, to the leader and every waiter of that attempt.
            TimeoutError: If a waiter's timeout elapses first.
        """
        if ttl <= 0:
            raise ValueError("ttl must be positive")

        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._stats["hits"] += 1
                return entry.value

            future = self._in_flight.get(key)
            if future is not None:
                self._stats["waits"] += 1
                leader = False
            else:
                future = Future()
                future.set_running_or_notify_cancel()
                self._in_flight[key] = future
                self._stats["misses"] += 1
                leader = True

        if not leader:
            logger.debug(f"Waiting on in-flight computation for {key}", extra={"cache_key": key})
            return future.result(timeout=timeout)

        try:
            with log_operation("cache_compute", logger_name=__name__, cache_key=key):
                value = compute_fn()
        except BaseException as exc:
            with self._lock:
                self._in_flight.pop(key, None)
                self._invalidated_in_flight.discard(key)
                self._stats["failures"] += 1
            future.set_exception(exc)
            raise

        with self._lock:
            self._in_flight.pop(key, None)
            self._stats["computations"] += 1
            if key in self._invalidated_in_flight:
                # Invalidated while computing: hand the value to this attempt's
                # callers but do not keep it.
                self._invalidated_in_flight.discard(key)
            else:
                self._entries[key] = CacheEntry(key=key, value=value, computed_at=self._timer(), ttl=ttl)

        future.set_result(value)
        return value

    def get(self, key: str) -> Any | None:
        """Cached value or None. Never computes."""
        with self._lock:
            entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def entry(self, key: str) -> CacheEntry | None:
        """Inspect the entry for key, including whether a computation is in flight."""
        with self._lock:
            entry = self._entries.get(key)
            in_flight = key in self._in_flight
        if entry is None:
            if not in_flight:
                return None
            return CacheEntry(key=key, value=None, computed_at=self._timer(), ttl=0, in_flight=True)
        return CacheEntry(
            key=entry.key,
            value=entry.value,
            computed_at=entry.computed_at,
            ttl=entry.ttl,
            in_flight=in_flight,
        )

    def invalidate(self, key: str) -> bool:
        """
        Evict key. A computation in flight for it still completes for its
        waiters, but its result is not stored.

        Returns:
            True if a cached value or in-flight computation was found
        """
        with self._lock:
            found = self._entries.pop(key, None) is not None
            if key in self._in_flight:
                self._invalidated_in_flight.add(key)
                found = True
            if found:
                self._stats["invalidations"] += 1
        if found:
            logger.debug(f"Invalidated cache key {key}", extra={"event": "cache_invalidate", "cache_key": key})
        return found

    def invalidate_prefix(self, prefix: str) -> int:
        """Evict every key starting with prefix. Returns the number of keys evicted."""
        with self._lock:
            keys = [k for k in list(self._entries.keys()) if k.startswith(prefix)]
            keys += [k for k in self._in_flight if k.startswith(prefix) and k not in keys]
        return sum(1 for k in keys if self.invalidate(k))

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._invalidated_in_flight.update(self._in_flight)

    def stats(self) -> dict:
        with self._lock:
            self._entries.expire()
            return {
                "entries": len(self._entries),
                "in_flight": len(self._in_flight),
                "hits": self._stats["hits"],
                "misses": self._stats["misses"],
                "waits": self._stats["waits"],
                "computations": self._stats["computations"],
                "failures": self._stats["failures"],
                "invalidations": self._stats["invalidations"],
            }
