"""Query normalization ahead of cache lookup and index search."""

import re
from typing import Iterable, List, Optional, Sequence, Tuple

import structlog

logger = structlog.get_logger("query_normalizer")


# Tried in order; the first pattern that matches wins. A pattern matches only
# the whole query or a leading word followed by a space, so "numeri" is left
# alone even though "numerica" is expanded.
SLANG_EXPANSIONS: Tuple[Tuple[str, str], ...] = (
    ("fundies", "fundamentals of computer science"),
    ("orgo", "organic chemistry"),
    ("chemistry", "chem"),
    ("numerica", "numerical"),
)

DEFAULT_EMAIL_DOMAINS: Tuple[str, ...] = ("northeastern.edu", "neu.edu")

# A suffix this short with this many digits is almost always a class number.
MAX_CLASS_SUFFIX_LENGTH = 5
MIN_CLASS_SUFFIX_DIGITS = 3


class QueryNormalizer:
    """Canonicalizes raw query text.

    The output is both the text sent to the indexes and the query half of
    the cache key, so normalization must be deterministic.
    """

    def __init__(
        self,
        slang: Sequence[Tuple[str, str]] = SLANG_EXPANSIONS,
        email_domains: Iterable[str] = DEFAULT_EMAIL_DOMAINS,
    ):
        self.slang = list(slang)
        domains = [d.lower().lstrip("@") for d in email_domains if d]
        self._email_pattern: Optional[re.Pattern] = None
        if domains:
            alternatives = "|".join(re.escape(d) for d in domains)
            self._email_pattern = re.compile(rf"@(?:{alternatives})", re.IGNORECASE)

    def normalize(self, raw_query: str, subject_codes: Iterable[str] = ()) -> str:
        """Normalize ``raw_query`` for the term whose subjects are given."""
        query = raw_query.strip().lower()
        query = self.expand_slang(query)
        query = self.space_subject_prefix(query, subject_codes)
        query = self.strip_email_domains(query)
        return query

    def expand_slang(self, query: str) -> str:
        for pattern, expansion in self.slang:
            if query == pattern or query.startswith(f"{pattern} "):
                expanded = expansion + query[len(pattern):]
                logger.debug("Slang expanded", pattern=pattern, query=expanded)
                return expanded
        return query

    def space_subject_prefix(self, query: str, subject_codes: Iterable[str]) -> str:
        """Turn ``cs2500`` into ``cs 2500`` so the tokenizer splits them."""
        code = self._longest_subject_prefix(query, subject_codes)
        if code is None:
            return query

        suffix = query[len(code):]
        if not suffix or suffix.startswith(" "):
            return query
        if len(suffix) > MAX_CLASS_SUFFIX_LENGTH:
            return query
        if sum(ch.isdigit() for ch in suffix) < MIN_CLASS_SUFFIX_DIGITS:
            return query

        return f"{query[:len(code)]} {suffix}"

    def strip_email_domains(self, query: str) -> str:
        if self._email_pattern is None:
            return query
        return self._email_pattern.sub("", query)

    @staticmethod
    def _longest_subject_prefix(query: str, subject_codes: Iterable[str]) -> Optional[str]:
        best: Optional[str] = None
        for code in subject_codes:
            code = code.lower()
            if code and query.startswith(code) and (best is None or len(code) > len(best)):
                best = code
        return best


def create_query_normalizer(email_domains: Optional[List[str]] = None) -> QueryNormalizer:
    """Create a query normalizer with the default slang table."""
    if email_domains is None:
        return QueryNormalizer()
    return QueryNormalizer(email_domains=email_domains)
