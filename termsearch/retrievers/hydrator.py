"""Hydration of scored refs into display records."""

import asyncio
from dataclasses import replace
from typing import Any, Awaitable, List, Optional, Sequence

import structlog

from termsearch_libs.common.metrics import MetricsCollector
from termsearch_libs.providers.base import DataProvider, EmployeeMap
from termsearch_libs.providers.keys import KeyHasher
from termsearch_libs.providers.records import EntityKind, ScoredRef, SectionDetail

from ..models import HydratedResult

logger = structlog.get_logger("result_hydrator")


class ResultHydrator:
    """Expands refs into full class and employee records.

    A ref that cannot be resolved (unknown to the provider, provider error,
    or timeout) is logged and comes back as a placeholder with no payload,
    so the output lines up with the input refs one for one. Sections that
    fail to resolve are dropped from their class.
    """

    def __init__(
        self,
        data_provider: DataProvider,
        employee_map: EmployeeMap,
        key_hasher: Optional[KeyHasher] = None,
        timeout_seconds: float = 5.0,
        metrics: Optional[MetricsCollector] = None,
    ):
        if data_provider is None or employee_map is None:
            raise ValueError("data_provider and employee_map are required")

        self.data_provider = data_provider
        self.employee_map = employee_map
        self.key_hasher = key_hasher or KeyHasher()
        self.timeout_seconds = timeout_seconds
        self.metrics = metrics

    async def hydrate(self, refs: Sequence[ScoredRef]) -> List[HydratedResult]:
        """Hydrate ``refs`` concurrently; one result per ref, in order."""
        results = list(await asyncio.gather(*(self._hydrate_one(ref) for ref in refs)))

        missing = sum(1 for result in results if not result.resolved)
        if missing:
            logger.warning(
                "Some refs could not be hydrated",
                requested=len(refs),
                missing=missing
            )
        return results

    async def _hydrate_one(self, ref: ScoredRef) -> HydratedResult:
        if ref.kind is EntityKind.CLASS:
            return await self._hydrate_class(ref)
        return self._hydrate_employee(ref)

    async def _hydrate_class(self, ref: ScoredRef) -> HydratedResult:
        detail = await self._call(self.data_provider.get_class_by_ref(ref.ref), "class", ref.ref)
        if detail is None:
            return self._missing(ref, EntityKind.CLASS)

        sections = await self._load_sections(detail)
        return HydratedResult(
            score=ref.score,
            kind=EntityKind.CLASS,
            payload=replace(detail, sections=sections),
        )

    async def _load_sections(self, detail) -> List[SectionDetail]:
        section_refs = []
        for crn in detail.crns:
            try:
                section_refs.append(self.key_hasher.section_ref(detail, crn))
            except ValueError as e:
                logger.error("Cannot build section ref", crn=crn, class_id=detail.class_id, error=str(e))

        fetched = await asyncio.gather(*(
            self._call(self.data_provider.get_section_by_ref(section_ref), "section", section_ref)
            for section_ref in section_refs
        ))

        sections = []
        for section_ref, section in zip(section_refs, fetched):
            if section is None:
                logger.warning("Section missing from dataset", section_ref=section_ref)
                if self.metrics:
                    self.metrics.record_hydration_miss("section")
                continue
            sections.append(section)
        return sections

    def _hydrate_employee(self, ref: ScoredRef) -> HydratedResult:
        employee = self.employee_map.get(ref.ref)
        if employee is None:
            return self._missing(ref, EntityKind.EMPLOYEE)
        return HydratedResult(score=ref.score, kind=EntityKind.EMPLOYEE, payload=employee)

    async def _call(self, call: Awaitable[Any], what: str, ref: str) -> Optional[Any]:
        try:
            return await asyncio.wait_for(call, timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning("Data provider call timed out", record=what, ref=ref, timeout=self.timeout_seconds)
            return None
        except Exception as e:
            logger.error("Data provider call failed", record=what, ref=ref, error=str(e))
            return None

    def _missing(self, ref: ScoredRef, kind: EntityKind) -> HydratedResult:
        logger.warning("Ref could not be hydrated", kind=kind.value, ref=ref.ref)
        if self.metrics:
            self.metrics.record_hydration_miss(kind.value)
        return HydratedResult(score=ref.score, kind=kind, payload=None)
