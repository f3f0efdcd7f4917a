"""In-memory data provider over scraped term dumps.

A term dump is the JSON the scraping pipeline writes for one term::

    {
        "subjects": [{"subject": "CS", "text": "Computer Science"}, ...],
        "classes": [{"host": "neu.edu", "termId": "202110", "subject": "CS",
                     "classId": "2500", "name": "Fundamentals Of ...",
                     "crns": ["10234", ...]}, ...],
        "sections": [{"host": "neu.edu", "termId": "202110", "subject": "CS",
                      "classId": "2500", "crn": "10234",
                      "seatsCapacity": 75, "seatsRemaining": 3}, ...]
    }

Keys are camelCase as emitted by the scrapers. Records are indexed by their
``KeyHasher`` ref on load, so lookups are dictionary reads.
"""

from collections import defaultdict
from typing import Any, Dict, Iterable, List, Mapping, Optional

import structlog

from .base import DataProvider
from .keys import KeyHasher
from .records import ClassDetail, EmployeeDetail, SectionDetail, Subject

logger = structlog.get_logger("providers.term_dump")


def _require(raw: Mapping[str, Any], key: str, kind: str) -> Any:
    value = raw.get(key)
    if value is None or value == "":
        raise ValueError(f"{kind} record is missing required field '{key}': {dict(raw)!r}")
    return value


def _optional_int(value: Any) -> Optional[int]:
    return None if value is None else int(value)


def section_from_dump(raw: Mapping[str, Any]) -> SectionDetail:
    """Build a ``SectionDetail`` from a scraped section dict."""
    return SectionDetail(
        host=_require(raw, "host", "section"),
        term_id=str(_require(raw, "termId", "section")),
        subject=_require(raw, "subject", "section"),
        class_id=str(_require(raw, "classId", "section")),
        crn=str(_require(raw, "crn", "section")),
        seats_capacity=int(raw.get("seatsCapacity") or 0),
        seats_remaining=int(raw.get("seatsRemaining") or 0),
        wait_capacity=_optional_int(raw.get("waitCapacity")),
        wait_remaining=_optional_int(raw.get("waitRemaining")),
        online=bool(raw.get("online", False)),
        honors=bool(raw.get("honors", False)),
        profs=list(raw.get("profs") or []),
        url=raw.get("url"),
    )


def class_from_dump(raw: Mapping[str, Any]) -> ClassDetail:
    """Build a ``ClassDetail`` from a scraped class dict."""
    return ClassDetail(
        host=_require(raw, "host", "class"),
        term_id=str(_require(raw, "termId", "class")),
        subject=_require(raw, "subject", "class"),
        class_id=str(_require(raw, "classId", "class")),
        name=raw.get("name") or "",
        desc=raw.get("desc"),
        url=raw.get("url"),
        crns=[str(crn) for crn in raw.get("crns") or []],
        prereqs=raw.get("prereqs"),
        coreqs=raw.get("coreqs"),
        prereqs_for=raw.get("prereqsFor"),
    )


def employee_from_dump(raw: Mapping[str, Any]) -> EmployeeDetail:
    """Build an ``EmployeeDetail`` from a scraped directory entry."""
    return EmployeeDetail(
        id=str(_require(raw, "id", "employee")),
        name=_require(raw, "name", "employee"),
        first_name=raw.get("firstName"),
        last_name=raw.get("lastName"),
        phone=raw.get("phone"),
        emails=list(raw.get("emails") or []),
        primary_role=raw.get("primaryRole"),
        primary_department=raw.get("primaryDepartment"),
        office_room=raw.get("officeRoom"),
        office_street_address=raw.get("officeStreetAddress"),
        url=raw.get("url"),
        personal_site=raw.get("personalSite"),
        big_picture_url=raw.get("bigPictureUrl"),
    )


def build_employee_map(employees: Iterable[Mapping[str, Any]]) -> Dict[str, EmployeeDetail]:
    """Index scraped employees by their ``id`` (the employee ref)."""
    employee_map: Dict[str, EmployeeDetail] = {}
    for raw in employees:
        employee = employee_from_dump(raw)
        employee_map[employee.id] = employee
    return employee_map


class TermDumpDataProvider(DataProvider):
    """``DataProvider`` backed by term dumps held in memory.

    Parameters
    - term_dumps: Mapping of term id to its dump (see module docstring)
    - key_hasher: Ref builder; defaults to ``KeyHasher()``
    """

    def __init__(
        self,
        term_dumps: Mapping[str, Mapping[str, Any]],
        key_hasher: Optional[KeyHasher] = None,
    ):
        if term_dumps is None:
            raise ValueError("term_dumps is required")

        self.key_hasher = key_hasher or KeyHasher()
        self._subjects: Dict[str, List[Subject]] = {}
        self._classes_by_subject: Dict[str, Dict[str, List[str]]] = {}
        self._classes: Dict[str, ClassDetail] = {}
        self._sections: Dict[str, SectionDetail] = {}

        for term_id, dump in term_dumps.items():
            self._load_term(str(term_id), dump)

    def _load_term(self, term_id: str, dump: Mapping[str, Any]) -> None:
        self._subjects[term_id] = [
            Subject(code=raw["subject"], display_name=raw.get("text") or raw["subject"])
            for raw in dump.get("subjects", [])
        ]

        # Sections sorted by CRN keep the attached order stable between scrapes.
        crns_by_class: Dict[str, List[str]] = defaultdict(list)
        sections = sorted(
            (section_from_dump(raw) for raw in dump.get("sections", [])),
            key=lambda s: s.crn,
        )
        for section in sections:
            class_ref = self.key_hasher.hash(
                section.host, section.term_id, section.subject, section.class_id
            )
            crns_by_class[class_ref].append(section.crn)
            ref = self.key_hasher.hash(
                section.host, section.term_id, section.subject, section.class_id, section.crn
            )
            self._sections[ref] = section

        by_subject: Dict[str, List[str]] = defaultdict(list)
        for raw in dump.get("classes", []):
            detail = class_from_dump(raw)
            ref = self.key_hasher.class_ref(detail)
            if not detail.crns:
                detail.crns = list(crns_by_class.get(ref, []))
            self._classes[ref] = detail
            by_subject[detail.subject.lower()].append(ref)

        orphaned = set(crns_by_class) - set(self._classes)
        if orphaned:
            logger.warning(
                "Sections without a matching class",
                term_id=term_id,
                class_refs=sorted(orphaned)[:10],
                count=len(orphaned)
            )

        self._classes_by_subject[term_id] = dict(by_subject)
        logger.info(
            "Term dump loaded",
            term_id=term_id,
            subjects=len(self._subjects[term_id]),
            classes=sum(len(refs) for refs in by_subject.values()),
            sections=len(sections)
        )

    async def has_term(self, term_id: str) -> bool:
        return term_id in self._subjects

    async def get_subjects(self, term_id: str) -> List[Subject]:
        return list(self._subjects.get(term_id, []))

    async def get_classes_in_subject(self, subject_code: str, term_id: str) -> List[str]:
        return list(self._classes_by_subject.get(term_id, {}).get(subject_code.lower(), []))

    async def get_class_by_ref(self, ref: str) -> Optional[ClassDetail]:
        return self._classes.get(ref)

    async def get_section_by_ref(self, ref: str) -> Optional[SectionDetail]:
        return self._sections.get(ref)
