"""Engine-side data model: cache entries, hydrated results, responses."""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from termsearch_libs.providers.records import (
    ClassDetail,
    EmployeeDetail,
    EntityKind,
    ScoredRef,
)


class SearchStatus:
    """Status strings reported in analytics."""
    SUCCESS = "Success"
    INDEX_RANGE_ERROR = "Index range error"
    INVALID_TERM = "Invalid termId"
    SEARCH_TIMEOUT = "Search timeout"


@dataclass(frozen=True)
class CacheKey:
    """Composite cache key; the parts are never concatenated."""
    term_id: str
    query: str


@dataclass
class CacheEntry:
    """Cached refs for one ``(term_id, normalized query)``.

    Only ``last_touched`` changes after creation.
    """
    refs: Tuple[ScoredRef, ...]
    was_subject_match: bool
    subject_name: Optional[str]
    subject_count: Optional[int]
    last_touched: float


@dataclass
class HydratedResult:
    """A ref expanded into its display record.

    ``payload`` is ``None`` when the ref could not be resolved. Such
    placeholders keep their position through sorting and paging and are
    dropped from the final page.
    """
    score: float
    kind: EntityKind
    payload: Optional[Union[ClassDetail, EmployeeDetail]]

    @property
    def resolved(self) -> bool:
        return self.payload is not None


@dataclass
class AnalyticsRecord:
    """Echo of the request plus how it was served."""
    status: str
    query: str
    term_id: str
    min_index: int
    max_index: int
    was_subject_match: bool = False
    subject_name: Optional[str] = None
    subject_count: Optional[int] = None
    is_cache_hit: bool = False
    result_count: int = 0


@dataclass
class SearchResponse:
    results: List[HydratedResult] = field(default_factory=list)
    analytics: Optional[AnalyticsRecord] = None
