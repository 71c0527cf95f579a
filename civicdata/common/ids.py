"""Run and record identifier helpers."""

from __future__ import annotations

from datetime import datetime, timezone


def generate_run_id() -> str:
    now = datetime.now(tz=timezone.utc)
    # Sortable id without external dependency.
    return now.strftime("run-%Y%m%dT%H%M%S%fZ")


def record_id(source_name: str, index: int) -> str:
    return f"{source_name}-{index}"
