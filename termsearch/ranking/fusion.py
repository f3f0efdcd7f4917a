"""Merging of the class and employee result streams."""

from dataclasses import replace
from typing import List, Sequence

import structlog

from termsearch_libs.providers.records import EntityKind, ScoredRef

logger = structlog.get_logger("search_fusion")


class RankedMerger:
    """Two-pointer merge of two score-sorted streams.

    Both inputs must already be sorted by descending score. The output is a
    single descending sequence. When the heads tie, the employee is emitted
    first; this makes the merged order reproducible for equal scores.
    """

    def fuse_results(
        self,
        class_results: Sequence[ScoredRef],
        employee_results: Sequence[ScoredRef],
    ) -> List[ScoredRef]:
        """Merge without mutating either input."""
        classes = [self._tag(r, EntityKind.CLASS) for r in class_results]
        employees = [self._tag(r, EntityKind.EMPLOYEE) for r in employee_results]

        merged: List[ScoredRef] = []
        i = j = 0
        while i < len(classes) and j < len(employees):
            if classes[i].score > employees[j].score:
                merged.append(classes[i])
                i += 1
            else:
                merged.append(employees[j])
                j += 1

        merged.extend(classes[i:])
        merged.extend(employees[j:])

        logger.debug(
            "Ranked merge completed",
            class_count=len(classes),
            employee_count=len(employees),
            merged_count=len(merged)
        )
        return merged

    @staticmethod
    def _tag(result: ScoredRef, kind: EntityKind) -> ScoredRef:
        # The stream a ref came from decides its kind.
        if result.kind is kind:
            return result
        return replace(result, kind=kind)


def create_ranked_merger() -> RankedMerger:
    """Create the class/employee stream merger."""
    return RankedMerger()
