"""Per-schema transformation of raw upstream rows into canonical records.

Each upstream schema has exactly one transformer. A transformer either returns
a record or raises a ``RecordError``; ``transform_batch`` turns those into a
rejection count so that one malformed row never aborts the rest of the batch.
"""

from __future__ import annotations

import math
import random
import re
from collections import Counter
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable

from civicdata.common.aqi import calculate_aqi, pollutant_key
from civicdata.common.boroughs import Borough, canonicalize_borough, resolve_borough, within_nyc
from civicdata.common.errors import ConfigError, RecordError, ValidationError
from civicdata.common.ids import record_id
from civicdata.common.models import CanonicalRecord, EnvironmentalIndicator, Facility, HealthIndicator
from civicdata.common.time_utils import parse_timestamp
from civicdata.acquisition.synthetic import (
    COMPLAINT_RELEVANCE,
    generate_phone,
    generate_retail_hours,
    generate_service_hours,
)

POLLUTANT_LABELS = {"pm25": "PM2.5", "ozone": "O3", "no2": "NO2"}
DEFAULT_COMPLAINT_RELEVANCE = 1

# NYC Parks publishes one-letter borough codes.
PARKS_BOROUGH_CODES = {
    "M": "Manhattan",
    "B": "Brooklyn",
    "Q": "Queens",
    "X": "Bronx",
    "R": "Staten Island",
}


@dataclass(frozen=True)
class TransformContext:
    source_name: str
    provenance: str
    captured_at: str
    rng: random.Random = field(default_factory=random.Random)


@dataclass(frozen=True)
class TransformOutcome:
    records: list[CanonicalRecord]
    rejected: int
    reasons: dict[str, int]


TransformFn = Callable[[Mapping[str, Any], int, TransformContext], CanonicalRecord]


@dataclass(frozen=True)
class SourceTransformer:
    name: str
    domain: str
    transform: TransformFn

    def __call__(self, raw: Mapping[str, Any], index: int, context: TransformContext) -> CanonicalRecord:
        return self.transform(raw, index, context)


def _lookup_first(attributes: Mapping[str, Any], candidates: tuple[str, ...]) -> object | None:
    for key in candidates:
        if key in attributes and attributes[key] not in (None, ""):
            return attributes[key]
    return None


def _safe_float(value: object) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(result):
        return None
    return result


def _safe_int(value: object) -> int | None:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        match = re.search(r"\d{4}", value)
        if match:
            return int(match.group(0))
    return None


def _text(value: object) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _required_text(raw: Mapping[str, Any], candidates: tuple[str, ...], label: str) -> str:
    text = _text(_lookup_first(raw, candidates))
    if text is None:
        raise ValidationError(f"Missing required field {label} (tried {', '.join(candidates)})")
    return text


def _required_number(raw: Mapping[str, Any], candidates: tuple[str, ...], label: str) -> float:
    value = _safe_float(_lookup_first(raw, candidates))
    if value is None:
        raise ValidationError(f"Missing or non-numeric field {label} (tried {', '.join(candidates)})")
    return value


def _borough(raw: Mapping[str, Any], candidates: tuple[str, ...]) -> Borough:
    seen: list[object] = []
    for key in candidates:
        value = raw.get(key)
        if value in (None, ""):
            continue
        borough = resolve_borough(value)
        if borough is not None:
            return borough
        seen.append(value)
    if not seen:
        raise ValidationError(f"Missing required borough field (tried {', '.join(candidates)})")
    return canonicalize_borough(seen[0])


def _coordinates(raw: Mapping[str, Any]) -> tuple[float | None, float | None]:
    lat = lon = None
    location = raw.get("location")
    if isinstance(location, Mapping):
        lat = _safe_float(location.get("latitude"))
        lon = _safe_float(location.get("longitude"))
        coords = location.get("coordinates")
        if (lat is None or lon is None) and isinstance(coords, (list, tuple)) and len(coords) == 2:
            # GeoJSON order is lon, lat.
            lon, lat = _safe_float(coords[0]), _safe_float(coords[1])
    if lat is None or lon is None:
        lat = _safe_float(raw.get("latitude"))
        lon = _safe_float(raw.get("longitude"))
    if lat is None or lon is None or not within_nyc(lat, lon):
        return None, None
    return lat, lon


def _address(raw: Mapping[str, Any]) -> str | None:
    direct = _text(_lookup_first(raw, ("address", "incident_address", "street_address")))
    if direct is not None:
        return direct
    number = _text(raw.get("street_number"))
    street = _text(raw.get("street_name"))
    if street is None:
        return None
    return f"{number} {street}" if number else street


def _zip(raw: Mapping[str, Any], candidates: tuple[str, ...]) -> str | None:
    value = _text(_lookup_first(raw, candidates))
    if value is None or not re.fullmatch(r"\d{5}", value[:5]):
        return None
    return value[:5]


def transform_health_indicator(raw: Mapping[str, Any], index: int, context: TransformContext) -> CanonicalRecord:
    borough = _borough(raw, ("geography", "borough", "geo_place_name"))
    indicator = _required_text(raw, ("topic", "measure", "name", "indicator"), "indicator")
    value = _required_number(raw, ("data_value", "rate", "percent"), "value")
    unit = _text(_lookup_first(raw, ("unit", "measure_info"))) or "percent"
    lat, lon = _coordinates(raw)
    return HealthIndicator(
        record_id=record_id(context.source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=value,
        unit=unit,
        category=indicator,
        indicator=indicator,
        age_group=_text(raw.get("age_group")),
        race_ethnicity=_text(raw.get("race_ethnicity")),
        year=_safe_int(_lookup_first(raw, ("year_description", "year", "time_period"))),
        external_id=_text(raw.get("unique_id")),
        zip_code=_zip(raw, ("zip_code", "zipcode")),
        provenance=context.provenance,
        captured_at=context.captured_at,
    )


def transform_air_quality(raw: Mapping[str, Any], index: int, context: TransformContext) -> CanonicalRecord:
    borough = _borough(raw, ("borough", "geo_place_name"))
    label = _required_text(raw, ("name", "measure"), "pollutant")
    concentration = _required_number(raw, ("data_value",), "data_value")
    unit = _text(raw.get("measure_info")) or "mcg/m3"

    aqi = category = None
    key = pollutant_key(label)
    if key is not None:
        table_value = round(concentration * 1000, 3) if "ppm" in unit.lower() else concentration
        reading = calculate_aqi(key, table_value)
        aqi, category = reading.index, reading.category

    geo_type = _text(raw.get("geo_type_name"))
    zip_code = _zip(raw, ("geo_entity_id",)) if geo_type and "zip" in geo_type.lower() else None
    lat, lon = _coordinates(raw)
    return EnvironmentalIndicator(
        record_id=record_id(context.source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=concentration,
        unit=unit,
        category=POLLUTANT_LABELS.get(key, label) if key else label,
        indicator=label,
        aqi=aqi,
        aqi_category=category,
        geo_type=geo_type,
        observed_at=parse_timestamp(raw.get("start_date")),
        external_id=_text(raw.get("unique_id")),
        zip_code=zip_code,
        provenance=context.provenance,
        captured_at=context.captured_at,
    )


def transform_service_request(raw: Mapping[str, Any], index: int, context: TransformContext) -> CanonicalRecord:
    borough = _borough(raw, ("borough", "park_borough"))
    complaint = _required_text(raw, ("complaint_type",), "complaint_type")
    relevance = COMPLAINT_RELEVANCE.get(complaint, DEFAULT_COMPLAINT_RELEVANCE)
    lat, lon = _coordinates(raw)
    return EnvironmentalIndicator(
        record_id=record_id(context.source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=float(relevance),
        unit="relevance",
        category=complaint,
        indicator=_text(raw.get("descriptor")) or complaint,
        observed_at=parse_timestamp(raw.get("created_date")),
        external_id=_text(raw.get("unique_key")),
        zip_code=_zip(raw, ("incident_zip",)),
        provenance=context.provenance,
        captured_at=context.captured_at,
    )


def transform_park(raw: Mapping[str, Any], index: int, context: TransformContext) -> CanonicalRecord:
    code = _text(raw.get("borough"))
    if code is not None and code.upper() in PARKS_BOROUGH_CODES:
        raw = {**raw, "borough": PARKS_BOROUGH_CODES[code.upper()]}
    borough = _borough(raw, ("borough",))
    name = _required_text(raw, ("signname", "park_name", "name311", "name"), "name")
    acres = _safe_float(raw.get("acres"))
    lat, lon = _coordinates(raw)
    return Facility(
        record_id=record_id(context.source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=acres,
        unit="acres" if acres is not None else None,
        category=_text(_lookup_first(raw, ("typecategory", "park_type"))) or "Park",
        name=name,
        address=_address(raw),
        external_id=_text(_lookup_first(raw, ("gispropnum", "objectid"))),
        zip_code=_zip(raw, ("zipcode", "zip_code")),
        provenance=context.provenance,
        captured_at=context.captured_at,
    )


def transform_food_retail(raw: Mapping[str, Any], index: int, context: TransformContext) -> CanonicalRecord:
    borough = _borough(raw, ("borough", "county"))
    name = _required_text(raw, ("store_name", "dba_name", "dba", "entity_name"), "name")
    lat, lon = _coordinates(raw)
    return Facility(
        record_id=record_id(context.source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        category=_text(_lookup_first(raw, ("store_type", "establishment_type"))) or "Grocery Store",
        name=name,
        address=_address(raw),
        # Retail store listings do not publish opening hours.
        hours=generate_retail_hours(context.rng),
        external_id=_text(raw.get("license_number")),
        zip_code=_zip(raw, ("zip_code", "zipcode")),
        provenance=context.provenance,
        captured_at=context.captured_at,
    )


def transform_social_service(raw: Mapping[str, Any], index: int, context: TransformContext) -> CanonicalRecord:
    borough = _borough(raw, ("borough",))
    name = _required_text(raw, ("facility_name", "organization_name", "name"), "name")
    facility_type = _text(_lookup_first(raw, ("facility_type", "type"))) or "Social Services"
    lat, lon = _coordinates(raw)
    return Facility(
        record_id=record_id(context.source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        category=facility_type,
        name=name,
        address=_address(raw),
        phone=_text(_lookup_first(raw, ("phone", "phone_number"))) or generate_phone(context.rng),
        hours=_text(_lookup_first(raw, ("operating_hours", "hours"))) or generate_service_hours(context.rng, facility_type),
        zip_code=_zip(raw, ("zip_code", "postcode", "zipcode")),
        provenance=context.provenance,
        captured_at=context.captured_at,
    )


TRANSFORMERS = MappingProxyType(
    {
        "health_indicators": SourceTransformer("health_indicators", "health", transform_health_indicator),
        "air_quality": SourceTransformer("air_quality", "environmental", transform_air_quality),
        "service_requests_311": SourceTransformer("service_requests_311", "environmental", transform_service_request),
        "parks": SourceTransformer("parks", "facility", transform_park),
        "food_retail": SourceTransformer("food_retail", "facility", transform_food_retail),
        "social_services": SourceTransformer("social_services", "facility", transform_social_service),
    }
)


def get_transformer(name: str) -> SourceTransformer:
    try:
        return TRANSFORMERS[name]
    except KeyError as exc:
        raise ConfigError(f"Unknown transformer: {name}") from exc


def transform_batch(transformer: SourceTransformer, items: list[Any], context: TransformContext) -> TransformOutcome:
    records: list[CanonicalRecord] = []
    reasons: Counter[str] = Counter()
    for index, item in enumerate(items):
        if not isinstance(item, Mapping):
            reasons[ValidationError.error_code] += 1
            continue
        try:
            records.append(transformer(item, index, context))
        except RecordError as exc:
            reasons[exc.error_code] += 1
    return TransformOutcome(records=records, rejected=sum(reasons.values()), reasons=dict(reasons))
