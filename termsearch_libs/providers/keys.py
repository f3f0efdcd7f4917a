"""Deterministic refs for classes and sections.

A ref is the path ``host/term_id/subject/class_id[/crn]``, e.g.
``neu.edu/202110/CS/2500/10234``. Scrapers, indexes and the engine all derive
refs the same way, so a ref built here matches one stored in an index.
"""

from typing import Optional

from .records import ClassDetail


class KeyHasher:
    """Builds refs from identifying attributes."""

    separator = "/"

    def hash(
        self,
        host: str,
        term_id: str,
        subject: str,
        class_id: Optional[str] = None,
        crn: Optional[str] = None,
    ) -> str:
        """Return the ref for the given attributes.

        Raises ``ValueError`` when a required part is missing, or when a CRN is
        given without the class it belongs to.
        """
        if not host or not term_id or not subject:
            raise ValueError("host, term_id and subject are required to build a ref")
        if crn is not None and class_id is None:
            raise ValueError("a section ref needs the class_id of its class")

        parts = [host, str(term_id), subject]
        if class_id is not None:
            parts.append(str(class_id))
        if crn is not None:
            parts.append(str(crn))
        return self.separator.join(parts)

    def class_ref(self, detail: ClassDetail) -> str:
        return self.hash(detail.host, detail.term_id, detail.subject, detail.class_id)

    def section_ref(self, detail: ClassDetail, crn: str) -> str:
        return self.hash(detail.host, detail.term_id, detail.subject, detail.class_id, crn)
