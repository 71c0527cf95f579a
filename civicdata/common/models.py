"""Data models used across the acquisition layer."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, field
from typing import Any, ClassVar

from civicdata.common.boroughs import Borough, borough_centroid
from civicdata.common.errors import ValidationError


@dataclass(frozen=True, kw_only=True)
class CanonicalRecord:
    """One normalised data point, independent of the upstream it came from.

    ``value`` and ``unit`` are either both present or both absent. Missing
    coordinates fall back to the borough centroid.
    """

    kind: ClassVar[str] = "record"

    record_id: str
    borough: Borough
    category: str
    provenance: str
    captured_at: str
    latitude: float | None = None
    longitude: float | None = None
    value: float | None = None
    unit: str | None = None
    source: str | None = None
    external_id: str | None = None
    zip_code: str | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.borough, Borough):
            raise ValidationError(f"borough must be a Borough, got {self.borough!r}")
        if not self.record_id:
            raise ValidationError("record_id is required")
        if (self.value is None) != (not self.unit):
            raise ValidationError(f"value and unit must be set together on {self.record_id}")
        if self.value is not None and not math.isfinite(self.value):
            raise ValidationError(f"value must be finite on {self.record_id}")
        if self.latitude is None or self.longitude is None:
            lat, lon = borough_centroid(self.borough)
            object.__setattr__(self, "latitude", lat)
            object.__setattr__(self, "longitude", lon)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["borough"] = self.borough.value
        payload["kind"] = self.kind
        return payload


@dataclass(frozen=True, kw_only=True)
class HealthIndicator(CanonicalRecord):
    kind: ClassVar[str] = "health"

    indicator: str
    age_group: str | None = None
    race_ethnicity: str | None = None
    year: int | None = None


@dataclass(frozen=True, kw_only=True)
class EnvironmentalIndicator(CanonicalRecord):
    kind: ClassVar[str] = "environmental"

    indicator: str
    aqi: int | None = None
    aqi_category: str | None = None
    geo_type: str | None = None
    observed_at: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if (self.aqi is None) != (self.aqi_category is None):
            raise ValidationError(f"aqi and aqi_category must be set together on {self.record_id}")


@dataclass(frozen=True, kw_only=True)
class Facility(CanonicalRecord):
    kind: ClassVar[str] = "facility"

    name: str
    address: str | None = None
    phone: str | None = None
    hours: str | None = None

    def __post_init__(self) -> None:
        super().__post_init__()
        if not self.name:
            raise ValidationError(f"facility name is required on {self.record_id}")


@dataclass(frozen=True)
class StrategyAttempt:
    strategy: str
    status: str
    duration_ms: int
    error_code: str | None = None
    rows_in: int = 0
    rows_out: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SourceResult:
    source_name: str
    records: tuple[CanonicalRecord, ...]
    provenance: str
    live: bool
    rejected_count: int = 0
    attempts: tuple[StrategyAttempt, ...] = ()

    def summary(self) -> dict[str, Any]:
        return {
            "provenance": self.provenance,
            "live": self.live,
            "count": len(self.records),
            "rejected": self.rejected_count,
        }


@dataclass(frozen=True)
class AggregationResult:
    records: tuple[CanonicalRecord, ...]
    per_source_live: dict[str, bool]
    source_results: dict[str, SourceResult]
    generated_at: str
    success: bool = True
    error: str | None = None
    contract: dict[str, Any] = field(default_factory=dict)

    def to_response(self) -> dict[str, Any]:
        response: dict[str, Any] = {
            "success": self.success,
            "data": [record.to_dict() for record in self.records],
            "metadata": {
                "source_count": len(self.per_source_live),
                "per_source_live": dict(self.per_source_live),
                "generated_at": self.generated_at,
                "sources": {name: result.summary() for name, result in self.source_results.items()},
            },
        }
        if self.error is not None:
            response["error"] = self.error
        return response
