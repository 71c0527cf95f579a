from __future__ import annotations

from dataclasses import replace
from pathlib import Path

import pytest

from civicdata.acquisition.synthetic import SyntheticDataGenerator
from civicdata.common.errors import ContractError
from civicdata.common.fs import read_json
from civicdata.common.models import AggregationResult, SourceResult, StrategyAttempt
from civicdata.pipeline.reports import write_run_summary
from civicdata.pipeline.validate import validate_dataset

STAMP = "2026-01-01T00:00:00.000+00:00"


def _records(source: str, profile: str, count: int):
    generated = SyntheticDataGenerator(profile, seed=5).generate(source, count, captured_at=STAMP)
    return [replace(record, source=source) for record in generated]


def test_validate_dataset_summarises_counts():
    records = _records("health", "health", 5) + _records("green_space", "parks", 3)

    summary = validate_dataset(records, ["health", "green_space"])

    assert summary["record_count"] == 8
    assert summary["by_source"] == {"green_space": 3, "health": 5}
    assert summary["by_kind"] == {"facility": 3, "health": 5}
    assert sum(summary["by_borough"].values()) == 8


def test_validate_dataset_rejects_duplicate_ids():
    records = _records("health", "health", 2)
    with pytest.raises(ContractError):
        validate_dataset(records + records[:1], ["health"])


def test_validate_dataset_rejects_unexpected_source():
    with pytest.raises(ContractError):
        validate_dataset(_records("weather", "health", 1), ["health"])


def test_validate_dataset_accepts_empty_dataset():
    assert validate_dataset([], ["health"])["record_count"] == 0


def _source_result(name: str, live: bool, count: int) -> SourceResult:
    return SourceResult(
        source_name=name,
        records=tuple(_records(name, "parks", count)),
        provenance="primary" if live else "synthetic",
        live=live,
        rejected_count=1 if live else 0,
        attempts=(StrategyAttempt(strategy="primary", status="ok" if live else "error", duration_ms=3),),
    )


def _result(*source_results: SourceResult) -> AggregationResult:
    return AggregationResult(
        records=tuple(r for result in source_results for r in result.records),
        per_source_live={result.source_name: result.live for result in source_results},
        source_results={result.source_name: result for result in source_results},
        generated_at=STAMP,
    )


def test_write_run_summary_partial_status(tmp_path: Path):
    result = _result(_source_result("a", True, 2), _source_result("b", False, 3))

    summary_path = write_run_summary(tmp_path, run_id="run-1", result=result)
    payload = read_json(summary_path)

    assert summary_path == tmp_path / "out" / "reports" / "run_summary.json"
    assert payload["status"] == "partial"
    assert payload["totals"] == {"records": 5, "rejected": 1, "live_sources": 1, "synthetic_sources": 1}
    assert payload["source_reports"]["b"]["provenance"] == "synthetic"
    assert payload["source_reports"]["a"]["attempts"][0]["status"] == "ok"


@pytest.mark.parametrize(
    ("live_flags", "status"),
    [((True, True), "success"), ((False, False), "synthetic")],
)
def test_write_run_summary_status(tmp_path: Path, live_flags, status):
    result = _result(*(_source_result(f"s{i}", live, 1) for i, live in enumerate(live_flags)))
    payload = read_json(write_run_summary(tmp_path, run_id="run-2", result=result))
    assert payload["status"] == status
