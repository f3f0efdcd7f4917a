"""Secondary ordering of equally relevant results.

The indexes often return long runs of identical relevance scores (every
section of a subject matching "cs", say). Within such a run, results are
ordered by a business score that approximates real-world interest:

- classes people are enrolled or waitlisted in come first, by demand;
- then undemanded classes, lower course numbers first;
- employees are ordered by how complete their directory entry is.

Relevance order between runs is never changed.
"""

import re
from typing import List, Sequence

import structlog

from termsearch_libs.providers.records import ClassDetail, EmployeeDetail, EntityKind

from ..models import HydratedResult

logger = structlog.get_logger("business_ranker")

DEMAND_BOOST = 1_000_000
MAX_CLASS_NUMBER = 10_000
UNPARSEABLE_CLASS_SCORE = 1
ANOMALOUS_CLASS_SCORE = 2
# Below every real score, so unresolved refs sink to the end of their tie group.
MISSING_RESULT_SCORE = -1

_CLASS_NUMBER = re.compile(r"^\d+$")


def class_business_score(detail: ClassDetail) -> int:
    """Demand-based score for a class.

    Without demand, lower course numbers score higher. The class id must be
    all digits to count as a course number: ids such as ``2500L`` or
    ``25.0`` are treated as unparseable.
    """
    if not detail.sections:
        return 0

    taken = 0
    for section in detail.sections:
        taken += section.seats_capacity - section.seats_remaining
        if section.has_waitlist:
            taken += section.wait_capacity - section.wait_remaining

    if taken > 0:
        return taken + DEMAND_BOOST

    class_id = str(detail.class_id).strip()
    if not _CLASS_NUMBER.match(class_id):
        return UNPARSEABLE_CLASS_SCORE

    class_number = int(class_id)
    if class_number > MAX_CLASS_NUMBER:
        logger.warning(
            "Class number out of range",
            subject=detail.subject,
            class_id=detail.class_id,
            limit=MAX_CLASS_NUMBER
        )
        return ANOMALOUS_CLASS_SCORE

    return MAX_CLASS_NUMBER - class_number


def employee_business_score(detail: EmployeeDetail) -> int:
    return detail.populated_attribute_count()


def business_score(result: HydratedResult) -> int:
    """Secondary score for one hydrated result."""
    if not result.resolved:
        return MISSING_RESULT_SCORE
    if result.kind is EntityKind.CLASS:
        return class_business_score(result.payload)
    return employee_business_score(result.payload)


class BusinessScoreSorter:
    """Stable reorder of each tie group by descending business score."""

    def sort_results(self, results: Sequence[HydratedResult]) -> List[HydratedResult]:
        ordered: List[HydratedResult] = []
        start = 0
        groups = 0
        while start < len(results):
            end = start + 1
            while end < len(results) and results[end].score == results[start].score:
                end += 1

            # sorted() with reverse=True keeps equal keys in input order.
            ordered.extend(sorted(results[start:end], key=business_score, reverse=True))
            groups += 1
            start = end

        logger.debug("Tie groups reordered", result_count=len(results), groups=groups)
        return ordered


def create_business_sorter() -> BusinessScoreSorter:
    """Create the tie-group business sorter."""
    return BusinessScoreSorter()
