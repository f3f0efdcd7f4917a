"""Records exchanged with the external data provider and search indexes.

These are the shapes the engine consumes: scored refs coming out of the
full-text indexes, and the display records refs hydrate into.
"""

from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


class EntityKind(Enum):
    """Which collection a ref points into."""
    CLASS = "class"
    EMPLOYEE = "employee"


@dataclass(frozen=True)
class ScoredRef:
    """A lightweight pointer to a record plus its relevance score."""
    ref: str
    kind: EntityKind
    score: float


@dataclass
class Subject:
    """A subject offered in a term, e.g. ``CS`` / ``Computer Science``."""
    code: str
    display_name: str


@dataclass
class SectionDetail:
    """One section (CRN) of a class, with seat and waitlist counts."""
    host: str
    term_id: str
    subject: str
    class_id: str
    crn: str
    seats_capacity: int = 0
    seats_remaining: int = 0
    wait_capacity: Optional[int] = None
    wait_remaining: Optional[int] = None
    online: bool = False
    honors: bool = False
    profs: List[str] = field(default_factory=list)
    url: Optional[str] = None

    @property
    def has_waitlist(self) -> bool:
        return self.wait_capacity is not None and self.wait_remaining is not None


@dataclass
class ClassDetail:
    """A class offering.

    ``crns`` lists the sections the provider knows about; ``sections`` is
    filled with the resolved section records during hydration. Prerequisite
    annotations are passed through untouched.
    """
    host: str
    term_id: str
    subject: str
    class_id: str
    name: str
    desc: Optional[str] = None
    url: Optional[str] = None
    crns: List[str] = field(default_factory=list)
    prereqs: Optional[Dict[str, Any]] = None
    coreqs: Optional[Dict[str, Any]] = None
    prereqs_for: Optional[Dict[str, Any]] = None
    sections: List[SectionDetail] = field(default_factory=list)


@dataclass
class EmployeeDetail:
    """A directory entry."""
    id: str
    name: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    emails: List[str] = field(default_factory=list)
    primary_role: Optional[str] = None
    primary_department: Optional[str] = None
    office_room: Optional[str] = None
    office_street_address: Optional[str] = None
    url: Optional[str] = None
    personal_site: Optional[str] = None
    big_picture_url: Optional[str] = None

    def populated_attribute_count(self) -> int:
        """Number of attributes carrying a value (not ``None``, not empty)."""
        count = 0
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None or value == "" or value == []:
                continue
            count += 1
        return count
