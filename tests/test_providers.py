"""Tests for refs and the term dump data provider."""

import pytest

from termsearch_libs.providers.keys import KeyHasher
from termsearch_libs.providers.term_dump import (
    TermDumpDataProvider,
    build_employee_map,
    class_from_dump,
    section_from_dump,
)

from .fakes import TERM_ID, class_ref


class TestKeyHasher:

    def test_class_and_section_refs(self):
        hasher = KeyHasher()
        assert hasher.hash("neu.edu", "202110", "CS", "2500") == "neu.edu/202110/CS/2500"
        assert hasher.hash("neu.edu", "202110", "CS", "2500", "10001") == "neu.edu/202110/CS/2500/10001"
        assert hasher.hash("neu.edu", "202110", "CS") == "neu.edu/202110/CS"

    def test_detail_helpers(self):
        detail = class_from_dump({"host": "neu.edu", "termId": 202110, "subject": "CS", "classId": 2500})
        hasher = KeyHasher()
        assert hasher.class_ref(detail) == "neu.edu/202110/CS/2500"
        assert hasher.section_ref(detail, "10001") == "neu.edu/202110/CS/2500/10001"

    @pytest.mark.parametrize("args", [
        ("", "202110", "CS"),
        ("neu.edu", "", "CS"),
        ("neu.edu", "202110", None),
    ])
    def test_missing_parts(self, args):
        with pytest.raises(ValueError):
            KeyHasher().hash(*args)

    def test_crn_without_class(self):
        with pytest.raises(ValueError):
            KeyHasher().hash("neu.edu", "202110", "CS", crn="10001")


class TestTermDumpDataProvider:

    @pytest.mark.asyncio
    async def test_terms_and_subjects(self, provider):
        assert await provider.has_term(TERM_ID)
        assert not await provider.has_term("199910")

        subjects = await provider.get_subjects(TERM_ID)
        assert [(s.code, s.display_name) for s in subjects] == [
            ("CS", "Computer Science"),
            ("MATH", "Mathematics"),
            ("PHIL", "Philosophy"),
        ]
        assert await provider.get_subjects("199910") == []

    @pytest.mark.asyncio
    async def test_classes_in_subject(self, provider):
        refs = await provider.get_classes_in_subject("cs", TERM_ID)
        assert refs == [class_ref("CS", "2500"), class_ref("CS", "2510"), class_ref("CS", "3500")]
        assert await provider.get_classes_in_subject("ARTH", TERM_ID) == []

    @pytest.mark.asyncio
    async def test_class_crns_come_from_sections(self, provider):
        detail = await provider.get_class_by_ref(class_ref("CS", "2500"))
        assert detail.name == "Fundamentals of Computer Science 1"
        assert detail.crns == ["10001", "10002"]

    @pytest.mark.asyncio
    async def test_section_lookup(self, provider):
        section = await provider.get_section_by_ref(class_ref("CS", "3500") + "/10020")
        assert section.seats_capacity == 50
        assert section.has_waitlist
        assert await provider.get_section_by_ref(class_ref("CS", "3500") + "/99999") is None
        assert await provider.get_class_by_ref("neu.edu/202110/CS/0000") is None

    def test_requires_dumps(self):
        with pytest.raises(ValueError):
            TermDumpDataProvider(None)

    def test_missing_required_field(self):
        with pytest.raises(ValueError):
            section_from_dump({"host": "neu.edu", "termId": TERM_ID, "subject": "CS", "classId": "2500"})


def test_build_employee_map(employees):
    employee_map = build_employee_map(employees)
    assert set(employee_map) == {"emp-1", "emp-2"}
    ada = employee_map["emp-1"]
    assert ada.primary_department == "Khoury College"
    assert ada.populated_attribute_count() == 8
