"""Base data provider and search index interfaces.

Defines the abstract contracts the search engine depends on, independent of
where term datasets and full-text indexes actually live.

All methods are asynchronous so implementations can do network or disk I/O
underneath; the engine bounds every call with a timeout.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from .records import ClassDetail, EmployeeDetail, ScoredRef, SectionDetail, Subject


# Employee refs resolve through a plain mapping.
EmployeeMap = Mapping[str, EmployeeDetail]


@dataclass(frozen=True)
class SearchFieldConfig:
    """Per-field boosts handed to a full-text index query."""
    boosts: Dict[str, float] = field(default_factory=dict)
    expand: bool = True


class DataProvider(ABC):
    """Read access to term datasets.

    Implementations should return ``None`` for unknown refs rather than
    raising, so a single missing record never fails a whole search.
    """

    @abstractmethod
    async def has_term(self, term_id: str) -> bool:
        """Return ``True`` when a dataset for ``term_id`` is loaded."""
        pass

    @abstractmethod
    async def get_subjects(self, term_id: str) -> List[Subject]:
        """All subjects offered in the term."""
        pass

    @abstractmethod
    async def get_classes_in_subject(self, subject_code: str, term_id: str) -> List[str]:
        """Class refs for one subject, in listing order."""
        pass

    @abstractmethod
    async def get_class_by_ref(self, ref: str) -> Optional[ClassDetail]:
        pass

    @abstractmethod
    async def get_section_by_ref(self, ref: str) -> Optional[SectionDetail]:
        pass


class SearchIndex(ABC):
    """A prebuilt full-text index over one collection."""

    @abstractmethod
    async def search(self, query: str, config: SearchFieldConfig) -> List[ScoredRef]:
        """Query the index.

        Returns
        - ``ScoredRef`` items sorted by descending score. Ties may appear in
          any order.
        """
        pass
