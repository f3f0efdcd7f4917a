"""Shared fixtures: a small term dataset, fake indexes and a fake clock."""

import pytest
from prometheus_client import CollectorRegistry

from termsearch_libs.common.config import SearchConfig
from termsearch_libs.common.metrics import MetricsCollector
from termsearch_libs.providers.records import EntityKind
from termsearch_libs.providers.term_dump import TermDumpDataProvider, build_employee_map
from termsearch.hybrid.search_manager import SearchManager
from termsearch.retrievers.cache_manager import ResultCache

from .fakes import TERM_ID, FakeClock, FakeSearchIndex, class_ref, scored


def _class(subject: str, class_id: str, name: str, crns=None) -> dict:
    raw = {
        "host": "neu.edu",
        "termId": TERM_ID,
        "subject": subject,
        "classId": class_id,
        "name": name,
    }
    if crns is not None:
        raw["crns"] = crns
    return raw


def _section(subject: str, class_id: str, crn: str, capacity: int, remaining: int, **extra) -> dict:
    raw = {
        "host": "neu.edu",
        "termId": TERM_ID,
        "subject": subject,
        "classId": class_id,
        "crn": crn,
        "seatsCapacity": capacity,
        "seatsRemaining": remaining,
    }
    raw.update(extra)
    return raw


@pytest.fixture
def term_dumps():
    return {
        TERM_ID: {
            "subjects": [
                {"subject": "CS", "text": "Computer Science"},
                {"subject": "MATH", "text": "Mathematics"},
                {"subject": "PHIL", "text": "Philosophy"},
            ],
            "classes": [
                _class("CS", "2500", "Fundamentals of Computer Science 1"),
                _class("CS", "2510", "Fundamentals of Computer Science 2"),
                _class("CS", "3500", "Object-Oriented Design"),
                _class("MATH", "1341", "Calculus 1"),
                _class("PHIL", "1101", "Introduction to Philosophy"),
            ],
            "sections": [
                # CS 2500: 10 seats taken
                _section("CS", "2500", "10002", 40, 35),
                _section("CS", "2500", "10001", 20, 15),
                # CS 2510: nobody enrolled yet
                _section("CS", "2510", "10010", 30, 30),
                # CS 3500: full, plus a waitlist
                _section("CS", "3500", "10020", 50, 0, waitCapacity=10, waitRemaining=4),
                # MATH 1341: no demand
                _section("MATH", "1341", "20001", 25, 25),
            ],
        }
    }


@pytest.fixture
def employees():
    return [
        {
            "id": "emp-1",
            "name": "Ada Lovelace",
            "firstName": "Ada",
            "lastName": "Lovelace",
            "emails": ["a.lovelace@northeastern.edu"],
            "primaryRole": "Professor",
            "primaryDepartment": "Khoury College",
            "phone": "6175550100",
        },
        {
            "id": "emp-2",
            "name": "Alan Turing",
            "emails": ["a.turing@northeastern.edu"],
        },
    ]


@pytest.fixture
def provider(term_dumps):
    return TermDumpDataProvider(term_dumps)


@pytest.fixture
def employee_map(employees):
    return build_employee_map(employees)


@pytest.fixture
def metrics():
    return MetricsCollector("test-service", registry=CollectorRegistry())


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def search_config():
    return SearchConfig(
        search_index_timeout_seconds=0.5,
        search_hydration_timeout_seconds=0.5,
    )


@pytest.fixture
def cache(clock, metrics):
    return ResultCache(clock=clock, metrics=metrics)


@pytest.fixture
def class_index():
    return FakeSearchIndex({
        "fundamentals": [
            scored(class_ref("CS", "2510"), 5.0),
            scored(class_ref("CS", "2500"), 5.0),
        ],
        "cs 2500": [
            scored(class_ref("CS", "2500"), 9.0),
            scored(class_ref("CS", "2510"), 2.0),
        ],
    })


@pytest.fixture
def employee_index():
    return FakeSearchIndex({
        "fundamentals": [scored("emp-2", 1.0, EntityKind.EMPLOYEE)],
        "a.lovelace": [scored("emp-1", 7.0, EntityKind.EMPLOYEE)],
    })


@pytest.fixture
def manager(provider, class_index, employee_index, employee_map, search_config, cache, metrics):
    return SearchManager(
        data_provider=provider,
        class_indexes={TERM_ID: class_index},
        employee_index=employee_index,
        employee_map=employee_map,
        config=search_config,
        cache=cache,
        metrics=metrics,
    )
