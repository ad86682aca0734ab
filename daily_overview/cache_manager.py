"""
Path: daily_overview/cache_manager.py

Daily overview cache.

Holds the last AggregationResult together with the instant it was computed
for. An entry is served only while it is younger than the validity window
AND was computed on the same local calendar day as "now"; the window is never
honoured across midnight.

State machine (per lookup):
    EMPTY --compute--> VALID --time passes / midnight--> STALE --compute--> VALID
    VALID --refresh_in_background--> VALID(new)

Passes are single-flight: while one is running, further lookups and refreshes
for the same local day await that same pass instead of starting another. A
lookup made after midnight never joins a pass started the day before; its pass
is queued behind the older one. Entries are replaced wholesale by reference
swap on success; a failed pass leaves the previous entry untouched.

Usage:
    cache = CacheManager(service.compute, validity_window=timedelta(minutes=5))

    result = await cache.get_or_compute()
    cache.refresh_in_background()      # fire-and-forget
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

import sentry_sdk

from daily_overview.models import AggregationResult
from daily_overview.today_filter import is_today, local_now, to_local
from shared.utils.structured_logging import log_cache_lookup

logger = logging.getLogger(__name__)

CACHE_KEY = "lss_daily_overview"
DEFAULT_VALIDITY_WINDOW = timedelta(minutes=5)

ComputeFn = Callable[[datetime], Awaitable[AggregationResult]]


class CacheState(Enum):
    EMPTY = "empty"
    VALID = "valid"
    STALE = "stale"


@dataclass(frozen=True)
class CacheEntry:
    """Aggregation result plus the reference instant it was computed for."""
    result: AggregationResult
    computed_at: datetime

    @property
    def key(self) -> str:
        return f"{CACHE_KEY}:{to_local(self.computed_at).isoformat()}"

    def is_valid(self, now: datetime, validity_window: timedelta) -> bool:
        age = to_local(now) - to_local(self.computed_at)
        return age < validity_window and is_today(self.computed_at, now)


@dataclass
class CacheMetrics:
    """Track cache behaviour for logging."""
    hits: int = 0
    misses: int = 0
    computations: int = 0
    coalesced: int = 0
    failures: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hits': self.hits,
            'misses': self.misses,
            'computations': self.computations,
            'coalesced': self.coalesced,
            'failures': self.failures,
        }


class CacheManager:
    """
    Owns the overview cache entry and the single in-flight pass.

    Args:
        compute: Coroutine function running one aggregation pass for a
                 reference instant
        validity_window: How long an entry is served (within the same day)
        clock: Returns "now" when callers do not pass it explicitly
    """

    def __init__(
        self,
        compute: ComputeFn,
        validity_window: timedelta = DEFAULT_VALIDITY_WINDOW,
        clock: Callable[[], datetime] = local_now,
    ):
        if validity_window <= timedelta(0):
            raise ValueError(f"validity_window must be positive, got {validity_window}")
        self._compute = compute
        self._validity_window = validity_window
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._in_flight: Optional[asyncio.Task] = None
        self._in_flight_ref: Optional[datetime] = None
        self._watched: Optional[asyncio.Task] = None
        self.metrics = CacheMetrics()

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    @property
    def validity_window(self) -> timedelta:
        return self._validity_window

    @property
    def in_flight(self) -> bool:
        return self._in_flight is not None and not self._in_flight.done()

    def state(self, now: Optional[datetime] = None) -> CacheState:
        if self._entry is None:
            return CacheState.EMPTY
        now = now or self._clock()
        if self._entry.is_valid(now, self._validity_window):
            return CacheState.VALID
        return CacheState.STALE

    def peek(self) -> Optional[AggregationResult]:
        """Last computed result regardless of validity (None when empty)."""
        return self._entry.result if self._entry is not None else None

    def invalidate(self) -> None:
        self._entry = None

    async def get_or_compute(self, now: Optional[datetime] = None) -> AggregationResult:
        """
        Return the cached result if valid, otherwise run (or join) a pass.

        Raises:
            Whatever the pass raises (typically SourceFetchError); the previous
            entry is kept.
        """
        now = now or self._clock()
        entry = self._entry
        if entry is not None and entry.is_valid(now, self._validity_window):
            self.metrics.hits += 1
            log_cache_lookup(CacheState.VALID.value, cache_hit=True, key=entry.key)
            return entry.result

        self.metrics.misses += 1
        state = CacheState.EMPTY if entry is None else CacheState.STALE
        log_cache_lookup(state.value, cache_hit=False)
        return await asyncio.shield(self._start_pass(now))

    async def force_refresh(self, now: Optional[datetime] = None) -> AggregationResult:
        """Run (or join) a pass regardless of validity and return its result."""
        return await asyncio.shield(self._start_pass(now or self._clock()))

    def refresh_in_background(self, now: Optional[datetime] = None) -> asyncio.Task:
        """
        Fire-and-forget refresh. Must be called from a running event loop.

        Returns the pass task (already running, or the one joined). Failures
        are logged and reported, and the existing entry stays in place.
        """
        task = self._start_pass(now or self._clock())
        if task is not self._watched:
            self._watched = task
            task.add_done_callback(self._report_background_failure)
        return task

    def _start_pass(self, now: datetime) -> asyncio.Task:
        previous = None
        if self.in_flight:
            if is_today(self._in_flight_ref, now):
                self.metrics.coalesced += 1
                logger.debug("Joining in-flight overview pass")
                return self._in_flight
            # A pass filtered against yesterday cannot answer for today
            logger.info(
                f"In-flight pass is for {to_local(self._in_flight_ref).date()}, "
                f"queueing a new pass for {to_local(now).date()}"
            )
            previous = self._in_flight

        self._in_flight_ref = now
        self._in_flight = asyncio.get_running_loop().create_task(self._run_pass(now, after=previous))
        return self._in_flight

    async def _run_pass(self, now: datetime, after: Optional[asyncio.Task] = None) -> AggregationResult:
        if after is not None:
            # Let the older pass finish first so it cannot overwrite this entry
            await asyncio.wait({after})

        self.metrics.computations += 1
        try:
            result = await self._compute(now)
        except Exception:
            self.metrics.failures += 1
            raise

        self._entry = CacheEntry(result=result, computed_at=now)
        logger.info(
            f"Overview cache updated: {self._entry.key} ({result.total} events), "
            f"metrics={self.metrics.to_dict()}"
        )
        return result

    def _report_background_failure(self, task: asyncio.Task) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is None:
            return

        kept = "keeping previous entry" if self._entry is not None else "cache stays empty"
        logger.error(f"Background overview refresh failed, {kept}: {error}", exc_info=error)
        sentry_sdk.capture_exception(error)
