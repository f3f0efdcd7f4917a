"""Search manager for term-scoped class and employee search.

Normalizes the query, serves ranked refs from the cache or from the two
full-text indexes (merged into one order), then hydrates and business-sorts
just the requested page. Subject names short-circuit ranking with a full
subject listing.
"""

import asyncio
import time
from typing import List, Mapping, Optional, Sequence

import structlog

from termsearch_libs.common.config import SearchConfig
from termsearch_libs.common.logging import log_performance
from termsearch_libs.common.metrics import MetricsCollector, get_metrics_collector
from termsearch_libs.providers.base import DataProvider, EmployeeMap, SearchIndex
from termsearch_libs.providers.keys import KeyHasher
from termsearch_libs.providers.records import EntityKind, ScoredRef, Subject

from ..models import AnalyticsRecord, CacheEntry, HydratedResult, SearchResponse, SearchStatus
from ..query.normalizer import create_query_normalizer
from ..query.subjects import match_subject
from ..ranking.business import create_business_sorter
from ..ranking.fusion import create_ranked_merger
from ..ranking.window import Window, expand_window
from ..retrievers.cache_manager import ResultCache, create_result_cache
from ..retrievers.hydrator import ResultHydrator
from ..retrievers.index_weights import CLASS_SEARCH_CONFIG, EMPLOYEE_SEARCH_CONFIG

logger = structlog.get_logger("search_service.search_manager")


class SearchManager:
    """Serves paginated search over one term's classes plus the directory.

    Responsibilities
    - Validate the request and resolve the term
    - Keep the ref cache and its sweeper
    - Merge index results, expand pages over tie groups, hydrate and sort

    Parameters
    - data_provider: Term datasets (subjects, classes, sections)
    - class_indexes: Full-text class index per term id
    - employee_index: Full-text index over the directory
    - employee_map: Employee ref to record
    - config: ``SearchConfig``; read from the environment when omitted
    - cache: Pre-built ``ResultCache`` (tests inject one with a fake clock)
    - metrics: ``MetricsCollector``; the process-wide one when omitted
    """

    def __init__(
        self,
        data_provider: DataProvider,
        class_indexes: Mapping[str, SearchIndex],
        employee_index: SearchIndex,
        employee_map: EmployeeMap,
        config: Optional[SearchConfig] = None,
        cache: Optional[ResultCache] = None,
        metrics: Optional[MetricsCollector] = None,
        key_hasher: Optional[KeyHasher] = None,
    ):
        missing = [
            name for name, value in (
                ("data_provider", data_provider),
                ("class_indexes", class_indexes),
                ("employee_index", employee_index),
                ("employee_map", employee_map),
            ) if value is None
        ]
        if missing:
            logger.error("Search manager missing arguments", missing=missing)
            raise ValueError(f"Missing required search inputs: {', '.join(missing)}")

        self.config = config or SearchConfig()
        self.metrics = metrics or get_metrics_collector("search-service")

        self.data_provider = data_provider
        self.class_indexes = class_indexes
        self.employee_index = employee_index

        self.query_normalizer = create_query_normalizer(self.config.search_email_domains)
        self.merger = create_ranked_merger()
        self.business_sorter = create_business_sorter()
        self.cache = cache or create_result_cache(
            horizon_seconds=self.config.search_cache_horizon_seconds,
            sweep_interval_seconds=self.config.search_cache_sweep_interval_seconds,
            high_water_mark=self.config.search_cache_high_water_mark,
            metrics=self.metrics,
        )
        self.hydrator = ResultHydrator(
            data_provider=data_provider,
            employee_map=employee_map,
            key_hasher=key_hasher,
            timeout_seconds=self.config.search_hydration_timeout_seconds,
            metrics=self.metrics,
        )
        self.index_timeout = self.config.search_index_timeout_seconds

    async def start(self) -> None:
        """Start background cache maintenance."""
        await self.cache.start()
        logger.info("Search manager started", terms=sorted(self.class_indexes))

    async def stop(self) -> None:
        await self.cache.stop()
        logger.info("Search manager stopped")

    async def search(
        self,
        query: str,
        term_id: str,
        min_index: int = 0,
        max_index: Optional[int] = None,
    ) -> SearchResponse:
        """Return results ``min_index`` (inclusive) to ``max_index`` (exclusive).

        Bad ranges and unknown terms come back as empty responses whose
        analytics ``status`` says why; they are never raised.
        """
        started = time.time()
        if max_index is None:
            max_index = self.config.search_default_max_index

        if min_index < 0 or max_index <= min_index:
            logger.error("Index range error", min_index=min_index, max_index=max_index, query=query)
            return self._finish(
                self._empty(SearchStatus.INDEX_RANGE_ERROR, query, term_id, min_index, max_index),
                started,
            )

        try:
            known_term = await asyncio.wait_for(self._has_term(term_id), timeout=self.index_timeout)
            if not known_term:
                logger.info("Invalid termId", term_id=term_id, query=query)
                return self._finish(
                    self._empty(SearchStatus.INVALID_TERM, query, term_id, min_index, max_index),
                    started,
                )

            subjects = await asyncio.wait_for(
                self.data_provider.get_subjects(term_id), timeout=self.index_timeout
            )
            normalized = self.query_normalizer.normalize(query, [s.code for s in subjects])

            entry, is_cache_hit = await self.cache.get_or_load(
                term_id,
                normalized,
                lambda: self._resolve_refs(term_id, normalized, subjects),
            )
        except asyncio.TimeoutError:
            logger.error("Search timed out", term_id=term_id, query=query, timeout=self.index_timeout)
            return self._finish(
                self._empty(SearchStatus.SEARCH_TIMEOUT, query, term_id, min_index, max_index),
                started,
            )

        if self.cache.above_high_water_mark:
            logger.info("Purging the cache because too many items are in the cache", entries=self.cache.size)
            self.cache.schedule_sweep()

        refs = entry.refs
        analytics = AnalyticsRecord(
            status=SearchStatus.SUCCESS,
            query=normalized,
            term_id=term_id,
            min_index=min_index,
            max_index=max_index,
            was_subject_match=entry.was_subject_match,
            subject_name=entry.subject_name,
            subject_count=entry.subject_count,
            is_cache_hit=is_cache_hit,
            result_count=len(refs),
        )

        if not refs:
            logger.info("Backend No Search Results", query=normalized, term_id=term_id)
            self.metrics.record_no_results()

        if not refs or min_index >= len(refs):
            analytics.result_count = 0
            return self._finish(SearchResponse(results=[], analytics=analytics), started)

        results = await self._load_page(refs, min_index, max_index, entry.was_subject_match)
        return self._finish(SearchResponse(results=results, analytics=analytics), started)

    async def _has_term(self, term_id: str) -> bool:
        if term_id not in self.class_indexes:
            return False
        return await self.data_provider.has_term(term_id)

    async def _resolve_refs(
        self,
        term_id: str,
        query: str,
        subjects: Sequence[Subject],
    ) -> CacheEntry:
        """Compute refs for a cache miss and store them."""
        match = match_subject(query, subjects)
        if match is not None:
            class_refs = await asyncio.wait_for(
                self.data_provider.get_classes_in_subject(match.code, term_id),
                timeout=self.index_timeout,
            )
            refs = [ScoredRef(ref=ref, kind=EntityKind.CLASS, score=0.0) for ref in class_refs]
            return self.cache.put(
                term_id,
                query,
                refs,
                was_subject_match=True,
                subject_name=match.name,
                subject_count=len(refs),
            )

        class_results, employee_results = await asyncio.wait_for(
            asyncio.gather(
                self.class_indexes[term_id].search(query, CLASS_SEARCH_CONFIG),
                self.employee_index.search(query, EMPLOYEE_SEARCH_CONFIG),
            ),
            timeout=self.index_timeout,
        )
        refs = self.merger.fuse_results(class_results, employee_results)
        return self.cache.put(term_id, query, refs)

    async def _load_page(
        self,
        refs: Sequence[ScoredRef],
        min_index: int,
        max_index: int,
        was_subject_match: bool,
    ) -> List[HydratedResult]:
        """Hydrate and order the requested page.

        Subject listings keep provider order, so their window is not widened
        and they are not business-sorted.
        Refs that fail to hydrate keep their slot until the page is cut and
        are left out of what is returned.
        """
        page_size = max_index - min_index

        if was_subject_match:
            window = Window(min_index, min(max_index, len(refs) - 1), min_index)
        else:
            window = expand_window(refs, min_index, max_index)

        hydrated = await self.hydrator.hydrate(refs[window.min_index:window.max_index + 1])
        if not was_subject_match:
            hydrated = self.business_sorter.sort_results(hydrated)

        # Trim by ref position first so page boundaries ignore hydration misses.
        page = hydrated[window.start_offset:window.start_offset + page_size]
        return [result for result in page if result.resolved]

    @staticmethod
    def _empty(status: str, query: str, term_id: str, min_index: int, max_index: int) -> SearchResponse:
        return SearchResponse(
            results=[],
            analytics=AnalyticsRecord(
                status=status,
                query=query,
                term_id=term_id,
                min_index=min_index,
                max_index=max_index,
            ),
        )

    def _finish(self, response: SearchResponse, started: float) -> SearchResponse:
        duration = time.time() - started
        analytics = response.analytics
        self.metrics.record_search(analytics.status, analytics.was_subject_match, duration)
        log_performance(
            "search",
            duration * 1000,
            status=analytics.status,
            term_id=analytics.term_id,
            cache_hit=analytics.is_cache_hit,
            returned=len(response.results),
        )
        return response

    def get_cache_stats(self):
        return self.cache.get_cache_stats()

    def sweep_cache(self) -> int:
        """Run a cache sweep immediately."""
        return self.cache.sweep_now(trigger="manual")

    async def health_check(self) -> bool:
        """Healthy when every indexed term is known to the data provider."""
        try:
            for term_id in self.class_indexes:
                if not await asyncio.wait_for(self.data_provider.has_term(term_id), timeout=self.index_timeout):
                    logger.warning("Indexed term missing from data provider", term_id=term_id)
                    return False
            return True
        except Exception as e:
            logger.error("Health check failed", error=str(e))
            return False
