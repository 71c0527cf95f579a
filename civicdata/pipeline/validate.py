"""Dataset contract check for merged aggregation output."""

from __future__ import annotations

from collections import Counter
from typing import Iterable

from civicdata.common.boroughs import Borough
from civicdata.common.errors import ContractError
from civicdata.common.models import CanonicalRecord


def validate_dataset(records: Iterable[CanonicalRecord], expected_sources: Iterable[str]) -> dict:
    expected = set(expected_sources)
    records = list(records)
    errors: list[str] = []

    ids = Counter(record.record_id for record in records)
    duplicates = sorted(record_id for record_id, count in ids.items() if count > 1)
    if duplicates:
        errors.append(f"DUPLICATE_RECORD_IDS:{','.join(duplicates[:5])}")

    unexpected = sorted({str(record.source) for record in records if record.source not in expected})
    if unexpected:
        errors.append(f"UNEXPECTED_SOURCES:{','.join(unexpected)}")

    bad_boroughs = sum(1 for record in records if not isinstance(record.borough, Borough))
    if bad_boroughs:
        errors.append(f"NON_CANONICAL_BOROUGHS:{bad_boroughs}")

    if errors:
        raise ContractError(";".join(errors))

    return {
        "record_count": len(records),
        "by_source": dict(sorted(Counter(str(record.source) for record in records).items())),
        "by_borough": dict(sorted(Counter(record.borough.value for record in records).items())),
        "by_kind": dict(sorted(Counter(record.kind for record in records).items())),
    }
