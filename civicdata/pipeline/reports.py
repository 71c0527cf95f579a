"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from civicdata.common.fs import write_json
from civicdata.common.models import AggregationResult


def write_run_summary(data_dir: Path, run_id: str, result: AggregationResult) -> Path:
    source_reports = {}
    totals = {"records": 0, "rejected": 0, "live_sources": 0, "synthetic_sources": 0}

    for name, source_result in result.source_results.items():
        source_reports[name] = {
            **source_result.summary(),
            "attempts": [attempt.to_dict() for attempt in source_result.attempts],
        }
        totals["records"] += len(source_result.records)
        totals["rejected"] += source_result.rejected_count
        if source_result.live:
            totals["live_sources"] += 1
        else:
            totals["synthetic_sources"] += 1

    status = "success"
    if totals["live_sources"] == 0:
        status = "synthetic"
    elif totals["synthetic_sources"] > 0:
        status = "partial"

    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    payload = {
        "run_id": run_id,
        "generated_at": result.generated_at,
        "status": status,
        "sources": list(result.source_results),
        "totals": totals,
        "contract": result.contract,
        "source_reports": source_reports,
    }
    write_json(summary_path, payload)
    return summary_path
