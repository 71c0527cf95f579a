from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from civicdata.cli import parse_args, run_command
from civicdata.common.constants import EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS

PARKS_ROWS = [
    {"signname": "Prospect Park", "borough": "B", "acres": "526.25", "gispropnum": "B073"},
    {"signname": "Pelham Bay Park", "borough": "X", "acres": "2771.75", "gispropnum": "X039"},
]


def _handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/enfh-gkve.json"):
        return httpx.Response(200, json=PARKS_ROWS)
    return httpx.Response(404, json={"message": "not found"})


def _args(data_dir: Path, *extra: str):
    return parse_args(
        [
            "aggregate",
            "--config-dir",
            "config",
            "--data-dir",
            str(data_dir),
            "--run-id",
            "run-test",
            "--seed",
            "11",
            *extra,
        ]
    )


@pytest.mark.integration
def test_cli_aggregate_generates_expected_artifacts(monkeypatch, tmp_path: Path):
    monkeypatch.delenv("NYC_OPEN_DATA_APP_TOKEN", raising=False)
    data_dir = tmp_path / "data"

    exit_code = run_command(_args(data_dir), transport=httpx.MockTransport(_handler))

    assert exit_code == EXIT_PARTIAL
    response = json.loads((data_dir / "out" / "dataset.json").read_text(encoding="utf-8"))
    summary = json.loads((data_dir / "out" / "reports" / "run_summary.json").read_text(encoding="utf-8"))
    assert (data_dir / "run_meta" / "run-test.log.jsonl").exists()

    assert response["success"] is True
    assert response["metadata"]["source_count"] == 6
    assert response["metadata"]["per_source_live"]["green_space"] is True
    assert response["metadata"]["per_source_live"]["health"] is False
    assert response["metadata"]["sources"]["green_space"]["provenance"] == "nyc_parks_public"
    assert summary["status"] == "partial"
    token_attempt = summary["source_reports"]["green_space"]["attempts"][0]
    assert token_attempt["error_code"] == "AUTH_MISSING"


@pytest.mark.integration
def test_cli_single_live_source_exits_success(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("NYC_OPEN_DATA_APP_TOKEN", "token")
    output = tmp_path / "parks.json"

    exit_code = run_command(
        _args(tmp_path / "data", "--source", "green_space", "--output", str(output)),
        transport=httpx.MockTransport(_handler),
    )

    assert exit_code == EXIT_SUCCESS
    response = json.loads(output.read_text(encoding="utf-8"))
    assert response["metadata"]["per_source_live"] == {"green_space": True}
    assert response["metadata"]["sources"]["green_space"]["provenance"] == "nyc_parks_with_token"
    assert [item["name"] for item in response["data"]] == ["Prospect Park", "Pelham Bay Park"]


@pytest.mark.integration
def test_cli_overlay_can_replace_strategies_with_fixed_rows(tmp_path: Path):
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / "sources.yml").write_text(
        """sources:
  snap_access:
    strategies:
      - name: literal_centres
        kind: fixed
        transformer: social_services
        rows:
          - facility_name: Job Center 54
            borough: Bronx
            facility_type: SNAP Center
""",
        encoding="utf-8",
    )

    exit_code = run_command(
        _args(tmp_path / "data", "--source", "snap_access", "--overlay-config-dir", str(overlay)),
        transport=httpx.MockTransport(_handler),
    )

    assert exit_code == EXIT_SUCCESS
    response = json.loads((tmp_path / "data" / "out" / "dataset.json").read_text(encoding="utf-8"))
    assert response["data"][0]["name"] == "Job Center 54"
    assert response["data"][0]["provenance"] == "literal_centres"


@pytest.mark.integration
def test_cli_unknown_source_is_hard_failure(tmp_path: Path):
    exit_code = run_command(
        _args(tmp_path / "data", "--source", "weather"),
        transport=httpx.MockTransport(_handler),
    )
    assert exit_code == EXIT_HARD_FAIL


@pytest.mark.integration
def test_cli_unknown_borough_is_hard_failure(tmp_path: Path):
    exit_code = run_command(
        _args(tmp_path / "data", "--borough", "Hoboken"),
        transport=httpx.MockTransport(_handler),
    )
    assert exit_code == EXIT_HARD_FAIL
