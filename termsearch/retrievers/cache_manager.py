"""In-memory cache of ranked refs per ``(term_id, normalized query)``.

Only refs are cached, never hydrated records, so seat counts shown to users
are always current.

Eviction is not LRU. A sweep keeps an entry only when it was touched within
the horizon (one day by default) *and* more recently than the mean entry.
Under heavy repeated traffic the mean age shrinks and stale entries go
faster; under light traffic more entries survive. Sweeps run on a fixed
interval and, when the cache grows past its high-water mark, as a deferred
task so the request that noticed never waits for eviction.

Concurrent misses for the same key share one load (see ``get_or_load``), so
a burst of identical queries reaches the indexes once.
"""

import asyncio
import time
from contextlib import suppress
from typing import Any, Awaitable, Callable, Dict, Optional, Sequence, Tuple

import structlog

from termsearch_libs.common.metrics import MetricsCollector
from termsearch_libs.providers.records import ScoredRef

from ..models import CacheEntry, CacheKey

logger = structlog.get_logger("search_cache")


class ResultCache:
    """Manages cached search refs and their eviction.

    Parameters
    - horizon_seconds: Entries untouched for this long are always dropped
    - sweep_interval_seconds: Period of the background sweep
    - high_water_mark: Entry count above which an early sweep is scheduled
    - clock: Returns the current time in seconds; injectable for tests
    - metrics: Optional collector for hit/miss/eviction metrics
    """

    def __init__(
        self,
        horizon_seconds: float = 86400.0,
        sweep_interval_seconds: float = 86400.0,
        high_water_mark: int = 10000,
        clock: Callable[[], float] = time.time,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.horizon_seconds = horizon_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.high_water_mark = high_water_mark
        self.clock = clock
        self.metrics = metrics

        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._sweeper_task: Optional[asyncio.Task] = None
        self._pending_sweep: Optional[asyncio.Task] = None
        self._in_flight: Dict[CacheKey, asyncio.Future] = {}

    @property
    def size(self) -> int:
        return len(self._entries)

    @property
    def above_high_water_mark(self) -> bool:
        return len(self._entries) > self.high_water_mark

    @property
    def pending_sweep(self) -> Optional[asyncio.Task]:
        """The scheduled deferred sweep, if one has not run yet."""
        return self._pending_sweep

    @property
    def in_flight(self) -> int:
        """Number of keys currently being loaded."""
        return len(self._in_flight)

    def get(self, term_id: str, query: str) -> Optional[CacheEntry]:
        """Look up refs and refresh the entry's ``last_touched`` on a hit."""
        key = CacheKey(term_id, query)
        entry = self._touch(key)
        self._record_lookup(key, hit=entry is not None)
        return entry

    async def get_or_load(
        self,
        term_id: str,
        query: str,
        loader: Callable[[], Awaitable[CacheEntry]],
    ) -> Tuple[CacheEntry, bool]:
        """Return ``(entry, is_cache_hit)``, loading a missing key only once.

        ``loader`` computes the refs and stores them with ``put``. Requests
        for a key whose load is already running wait for that load and count
        as hits. If the load fails, every waiting request gets the same
        exception; nothing is cached and the next request loads again.
        """
        key = CacheKey(term_id, query)
        while True:
            entry = self._touch(key)
            if entry is not None:
                self._record_lookup(key, hit=True)
                return entry, True

            pending = self._in_flight.get(key)
            if pending is None:
                break

            logger.debug("Waiting for in-flight search", term_id=term_id, query=query[:50])
            try:
                entry = await asyncio.shield(pending)
            except asyncio.CancelledError:
                # The loading request was cancelled, not this one: load again.
                if pending.cancelled():
                    continue
                raise

            entry.last_touched = self.clock()
            self._record_lookup(key, hit=True)
            return entry, True

        self._record_lookup(key, hit=False)
        future = asyncio.get_running_loop().create_future()
        self._in_flight[key] = future
        try:
            entry = await loader()
        except asyncio.CancelledError:
            future.cancel()
            raise
        except Exception as e:
            future.set_exception(e)
            # Waiters re-raise it themselves; mark it retrieved for the loop.
            future.exception()
            raise
        else:
            future.set_result(entry)
            return entry, False
        finally:
            self._in_flight.pop(key, None)

    def _touch(self, key: CacheKey) -> Optional[CacheEntry]:
        entry = self._entries.get(key)
        if entry is not None:
            entry.last_touched = self.clock()
        return entry

    def _record_lookup(self, key: CacheKey, hit: bool) -> None:
        if hit:
            logger.debug("Search refs cache hit", term_id=key.term_id, query=key.query[:50])
            if self.metrics:
                self.metrics.record_cache_hit()
        else:
            logger.debug("Search refs cache miss", term_id=key.term_id, query=key.query[:50])
            if self.metrics:
                self.metrics.record_cache_miss()

    def put(
        self,
        term_id: str,
        query: str,
        refs: Sequence[ScoredRef],
        was_subject_match: bool = False,
        subject_name: Optional[str] = None,
        subject_count: Optional[int] = None,
    ) -> CacheEntry:
        """Store refs for a query, replacing any existing entry for the key."""
        entry = CacheEntry(
            refs=tuple(refs),
            was_subject_match=was_subject_match,
            subject_name=subject_name,
            subject_count=subject_count,
            last_touched=self.clock(),
        )
        self._entries[CacheKey(term_id, query)] = entry
        if self.metrics:
            self.metrics.set_cache_entries(len(self._entries))
        logger.debug("Search refs cached", term_id=term_id, query=query[:50], count=len(entry.refs))
        return entry

    def sweep(self, now: float, trigger: str = "manual") -> int:
        """Evict old entries and return how many were dropped.

        The surviving entries are copied into a new map which then replaces
        the old one in a single assignment.
        """
        entries = self._entries
        if not entries:
            return 0

        mean_age = sum(now - e.last_touched for e in entries.values()) / len(entries)

        kept: Dict[CacheKey, CacheEntry] = {}
        for key, entry in entries.items():
            age = now - entry.last_touched
            if age < self.horizon_seconds and age < mean_age:
                kept[key] = entry

        self._entries = kept
        removed = len(entries) - len(kept)

        logger.info(
            "Search cache swept",
            trigger=trigger,
            entries_before=len(entries),
            entries_kept=len(kept),
            mean_age_seconds=round(mean_age, 3)
        )
        if self.metrics:
            self.metrics.record_cache_eviction(trigger, removed)
            self.metrics.set_cache_entries(len(kept))
        return removed

    def sweep_now(self, trigger: str = "manual") -> int:
        """Sweep using the injected clock."""
        return self.sweep(self.clock(), trigger=trigger)

    def schedule_sweep(self) -> asyncio.Task:
        """Submit a sweep to run on a later event-loop tick.

        Must be called from a running event loop. Returns the pending task;
        repeated calls before it runs return the same task.
        """
        if self._pending_sweep is not None and not self._pending_sweep.done():
            return self._pending_sweep

        logger.info("Scheduling cache sweep", entries=len(self._entries), high_water_mark=self.high_water_mark)
        task = asyncio.get_running_loop().create_task(self._deferred_sweep())
        task.add_done_callback(self._on_deferred_sweep_done)
        self._pending_sweep = task
        return task

    async def _deferred_sweep(self) -> int:
        # Let the current request finish its response first.
        await asyncio.sleep(0)
        return self.sweep_now(trigger="high_water_mark")

    def _on_deferred_sweep_done(self, task: asyncio.Task) -> None:
        if self._pending_sweep is task:
            self._pending_sweep = None
        if not task.cancelled() and task.exception() is not None:
            logger.error("Deferred cache sweep failed", error=str(task.exception()))

    async def start(self) -> None:
        """Start the interval sweeper in the background."""
        if self._sweeper_task and not self._sweeper_task.done():
            logger.info("Cache sweeper already running")
            return

        self._sweeper_task = asyncio.create_task(self._run_periodic_sweeps())
        logger.info("Cache sweeper started", interval_seconds=self.sweep_interval_seconds)

    async def _run_periodic_sweeps(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            self.sweep_now(trigger="interval")

    async def stop(self) -> None:
        """Stop the interval sweeper and drop any pending deferred sweep."""
        for task in (self._sweeper_task, self._pending_sweep):
            if task and not task.done():
                task.cancel()
                with suppress(asyncio.CancelledError):
                    await task

        self._sweeper_task = None
        self._pending_sweep = None
        logger.info("Cache sweeper stopped")

    @property
    def running(self) -> bool:
        return self._sweeper_task is not None and not self._sweeper_task.done()

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        now = self.clock()
        ages = [now - e.last_touched for e in self._entries.values()]
        return {
            "entries": len(ages),
            "high_water_mark": self.high_water_mark,
            "horizon_seconds": self.horizon_seconds,
            "sweep_interval_seconds": self.sweep_interval_seconds,
            "mean_age_seconds": (sum(ages) / len(ages)) if ages else 0.0,
            "oldest_age_seconds": max(ages) if ages else 0.0,
            "sweeper_running": self.running,
        }


def create_result_cache(
    horizon_seconds: float = 86400.0,
    sweep_interval_seconds: float = 86400.0,
    high_water_mark: int = 10000,
    clock: Callable[[], float] = time.time,
    metrics: Optional[MetricsCollector] = None,
) -> ResultCache:
    """Create the search refs cache."""
    return ResultCache(
        horizon_seconds=horizon_seconds,
        sweep_interval_seconds=sweep_interval_seconds,
        high_water_mark=high_water_mark,
        clock=clock,
        metrics=metrics,
    )
