"""Exact subject matching.

A query that names a subject outright (``cs`` or ``computer science``) lists
every class in that subject instead of running a ranked search.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

import structlog

from termsearch_libs.providers.records import Subject

logger = structlog.get_logger("subject_matcher")


@dataclass
class SubjectMatch:
    subject: Subject

    @property
    def code(self) -> str:
        return self.subject.code

    @property
    def name(self) -> str:
        return self.subject.display_name


def match_subject(query: str, subjects: Iterable[Subject]) -> Optional[SubjectMatch]:
    """Return the subject whose code or display name equals ``query``.

    Comparison is case-insensitive and ignores surrounding whitespace. The
    subject list per term is small, so a linear scan is fine.
    """
    needle = query.strip().lower()
    if not needle:
        return None

    for subject in subjects:
        if needle == subject.code.lower() or needle == subject.display_name.lower():
            logger.info("Exact subject match", subject=subject.code)
            return SubjectMatch(subject=subject)
    return None
