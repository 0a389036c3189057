"""
In-Process Cache Module

Single-slot caches for expensive loads with:
- TTL management
- Optional fingerprint-based invalidation
- Coalesced reloads (one in-flight load per slot)
- Stale fallback when a reload fails
"""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Generic, Optional, TypeVar

import structlog
from prometheus_client import Counter

logger = structlog.get_logger(__name__)

T = TypeVar("T")


# =============================================================================
# METRICS
# =============================================================================

CACHE_REQUESTS = Counter(
    "retail_cache_requests_total",
    "Cache lookups by outcome",
    ["cache", "result"],
)


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    """A loaded value; replaced as a whole, never mutated"""
    value: T
    fingerprint: Optional[str]
    loaded_at: datetime
    stored_at: float


@dataclass
class CacheResult(Generic[T]):
    """Value served by a cache lookup"""
    value: T
    cached: bool
    stale: bool
    fingerprint: Optional[str]
    loaded_at: datetime


class DataCache(Generic[T]):
    """
    Cache one loaded value.

    A lookup is a hit while the entry is younger than ``ttl_seconds`` and,
    when a ``fingerprint`` callable is given, its fingerprint still matches
    the current one. Concurrent misses share a single load.

    Example:
        cache = DataCache("data", loader.load_all, ttl_seconds=300,
                          fingerprint=discovery.current_fingerprint)
        result = await cache.get()
    """

    def __init__(
        self,
        name: str,
        loader: Callable[[], Awaitable[T]],
        ttl_seconds: float,
        fingerprint: Optional[Callable[[], Awaitable[str]]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.name = name
        self.ttl_seconds = ttl_seconds
        self._loader = loader
        self._fingerprint = fingerprint
        self._clock = clock
        self._entry: Optional[CacheEntry[T]] = None
        self._inflight: Optional["asyncio.Future[CacheEntry[T]]"] = None

    @property
    def entry(self) -> Optional[CacheEntry[T]]:
        return self._entry

    def _is_fresh(self, entry: CacheEntry[T]) -> bool:
        return self._clock() - entry.stored_at < self.ttl_seconds

    def invalidate(self) -> None:
        """Drop the entry; the next lookup loads"""
        self._entry = None
        logger.info("Cache invalidated", cache=self.name)

    async def _load(self, fingerprint: Optional[str]) -> CacheEntry[T]:
        started = self._clock()
        value = await self._loader()
        entry = CacheEntry(
            value=value,
            fingerprint=fingerprint,
            loaded_at=datetime.utcnow(),
            stored_at=self._clock(),
        )
        self._entry = entry
        logger.info(
            "Cache loaded",
            cache=self.name,
            fingerprint=fingerprint,
            duration_seconds=round(entry.stored_at - started, 3),
        )
        return entry

    def _on_load_done(self, task: "asyncio.Future[CacheEntry[T]]") -> None:
        if self._inflight is task:
            self._inflight = None
        # Mark the exception retrieved when every waiter went away
        if not task.cancelled():
            task.exception()

    async def _reload(self, fingerprint: Optional[str]) -> CacheEntry[T]:
        if self._inflight is None:
            task = asyncio.ensure_future(self._load(fingerprint))
            task.add_done_callback(self._on_load_done)
            self._inflight = task
        else:
            logger.debug("Joining in-flight load", cache=self.name)
        # A cancelled caller must not cancel the load other callers share
        return await asyncio.shield(self._inflight)

    async def get(self, force_refresh: bool = False) -> CacheResult[T]:
        """
        Serve the cached value, loading when missing, expired or changed.

        Args:
            force_refresh: Skip the freshness checks and reload

        Raises:
            Exception: whatever the loader raised, when there is no entry to fall back on
        """
        entry = self._entry
        current: Optional[str] = None

        if self._fingerprint is not None:
            current = await self._fingerprint()

        if (
            not force_refresh
            and entry is not None
            and self._is_fresh(entry)
            and (self._fingerprint is None or current == entry.fingerprint)
        ):
            CACHE_REQUESTS.labels(cache=self.name, result="hit").inc()
            return CacheResult(
                value=entry.value,
                cached=True,
                stale=False,
                fingerprint=entry.fingerprint,
                loaded_at=entry.loaded_at,
            )

        try:
            entry = await self._reload(current)
        except Exception as e:
            fallback = self._entry
            if fallback is None:
                CACHE_REQUESTS.labels(cache=self.name, result="error").inc()
                logger.error("Cache load failed with nothing to serve", cache=self.name, error=str(e))
                raise
            CACHE_REQUESTS.labels(cache=self.name, result="stale").inc()
            logger.warning(
                "Cache load failed, serving stale entry",
                cache=self.name,
                error=str(e),
                loaded_at=fallback.loaded_at.isoformat(),
            )
            return CacheResult(
                value=fallback.value,
                cached=True,
                stale=True,
                fingerprint=fallback.fingerprint,
                loaded_at=fallback.loaded_at,
            )

        CACHE_REQUESTS.labels(cache=self.name, result="miss").inc()
        return CacheResult(
            value=entry.value,
            cached=False,
            stale=False,
            fingerprint=entry.fingerprint,
            loaded_at=entry.loaded_at,
        )
