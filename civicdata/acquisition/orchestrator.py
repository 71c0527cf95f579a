"""Concurrent multi-source aggregation and the downstream consumer call."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, Mapping

from civicdata.acquisition.executor import FallbackChainExecutor
from civicdata.common.boroughs import Borough, canonicalize_borough
from civicdata.common.constants import SYNTHETIC_PROVENANCE
from civicdata.common.errors import ConfigError
from civicdata.common.logging import log_event
from civicdata.common.models import AggregationResult, CanonicalRecord, SourceResult
from civicdata.common.time_utils import utc_timestamp_iso
from civicdata.pipeline.validate import validate_dataset

COMPONENT = "orchestrator"


@dataclass(frozen=True)
class AggregationFilter:
    sources: tuple[str, ...] | None = None
    boroughs: tuple[Borough, ...] | None = None

    @classmethod
    def build(cls, sources: list[str] | None = None, boroughs: list[str] | None = None) -> "AggregationFilter":
        return cls(
            sources=tuple(sources) if sources else None,
            boroughs=tuple(canonicalize_borough(name) for name in boroughs) if boroughs else None,
        )


class AggregationOrchestrator:
    def __init__(self, executors: Mapping[str, FallbackChainExecutor], *, logger: logging.Logger) -> None:
        self.executors = dict(executors)
        self.logger = logger

    def _selected(self, filters: AggregationFilter) -> list[str]:
        if filters.sources is None:
            return list(self.executors)
        unknown = [name for name in filters.sources if name not in self.executors]
        if unknown:
            raise ConfigError(f"Unknown sources: {', '.join(unknown)}")
        return [name for name in self.executors if name in filters.sources]

    def _settle(self, name: str, outcome: SourceResult | BaseException) -> SourceResult:
        if not isinstance(outcome, BaseException):
            return outcome
        # Executor broke outside its strategy loop; the source contributes nothing.
        log_event(
            self.logger,
            f"source failed: {type(outcome).__name__}: {outcome}",
            level=logging.ERROR,
            component=COMPONENT,
            source=name,
            event="SOURCE_DONE",
            status="error",
            error_code=getattr(outcome, "error_code", "UNEXPECTED_ERROR"),
        )
        return SourceResult(source_name=name, records=(), provenance=SYNTHETIC_PROVENANCE, live=False)

    async def run(self, filters: AggregationFilter | None = None) -> AggregationResult:
        filters = filters or AggregationFilter()
        names = self._selected(filters)
        log_event(
            self.logger,
            "aggregation start",
            component=COMPONENT,
            event="AGGREGATION_START",
            status="ok",
            rows_in=len(names),
        )

        settled = await asyncio.gather(
            *(self.executors[name].run() for name in names),
            return_exceptions=True,
        )
        results = [self._settle(name, outcome) for name, outcome in zip(names, settled)]

        records: list[CanonicalRecord] = []
        for name, result in zip(names, results):
            for record in result.records:
                if filters.boroughs is not None and record.borough not in filters.boroughs:
                    continue
                records.append(replace(record, source=name))

        contract = validate_dataset(records, names)
        per_source_live = {name: result.live for name, result in zip(names, results)}
        log_event(
            self.logger,
            "aggregation end",
            component=COMPONENT,
            event="AGGREGATION_END",
            status="ok" if all(per_source_live.values()) else "partial",
            rows_out=len(records),
        )
        return AggregationResult(
            records=tuple(records),
            per_source_live=per_source_live,
            source_results=dict(zip(names, results)),
            generated_at=utc_timestamp_iso(),
            contract=contract,
        )


async def run_with_deadline(
    orchestrator: AggregationOrchestrator,
    filters: AggregationFilter | None = None,
    *,
    deadline: float | None = None,
) -> AggregationResult:
    try:
        return await asyncio.wait_for(orchestrator.run(filters), timeout=deadline)
    except asyncio.TimeoutError:
        log_event(
            orchestrator.logger,
            f"aggregation exceeded deadline of {deadline}s",
            level=logging.ERROR,
            component=COMPONENT,
            event="AGGREGATION_END",
            status="error",
            error_code="DEADLINE_EXCEEDED",
        )
        return AggregationResult(
            records=(),
            per_source_live={},
            source_results={},
            generated_at=utc_timestamp_iso(),
            success=False,
            error=f"Aggregation exceeded deadline of {deadline} seconds",
        )


async def fetch_dataset(
    orchestrator: AggregationOrchestrator,
    filters: AggregationFilter | None = None,
    *,
    deadline: float | None = None,
) -> dict[str, Any]:
    """Run one aggregation and render the consumer response.

    ``success`` stays true when sources fell back to synthetic data. Only an
    expired ``deadline`` produces ``success: false``; explicit cancellation of
    the caller propagates.
    """
    result = await run_with_deadline(orchestrator, filters, deadline=deadline)
    return result.to_response()
