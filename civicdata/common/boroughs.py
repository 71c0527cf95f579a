"""Borough canonicalisation.

Free-text place names coming from upstream datasets are resolved to one of the
five ``Borough`` values. Unknown input is rejected, never guessed: there is no
fuzzy or partial matching.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType

from civicdata.common.errors import ValidationError


class Borough(str, Enum):
    MANHATTAN = "Manhattan"
    BROOKLYN = "Brooklyn"
    QUEENS = "Queens"
    BRONX = "Bronx"
    STATEN_ISLAND = "Staten Island"


_CANONICAL_NAMES = MappingProxyType({borough.value: borough for borough in Borough})

BOROUGH_ALIASES = MappingProxyType(
    {
        "manhattan": Borough.MANHATTAN,
        "new york": Borough.MANHATTAN,
        "new york county": Borough.MANHATTAN,
        "ny county": Borough.MANHATTAN,
        "brooklyn": Borough.BROOKLYN,
        "kings": Borough.BROOKLYN,
        "kings county": Borough.BROOKLYN,
        "queens": Borough.QUEENS,
        "queens county": Borough.QUEENS,
        "bronx": Borough.BRONX,
        "the bronx": Borough.BRONX,
        "bronx county": Borough.BRONX,
        "staten island": Borough.STATEN_ISLAND,
        "richmond": Borough.STATEN_ISLAND,
        "richmond county": Borough.STATEN_ISLAND,
        "si": Borough.STATEN_ISLAND,
    }
)

BOROUGH_CENTROIDS = MappingProxyType(
    {
        Borough.MANHATTAN: (40.7831, -73.9712),
        Borough.BROOKLYN: (40.6782, -73.9442),
        Borough.QUEENS: (40.7282, -73.7949),
        Borough.BRONX: (40.8448, -73.8648),
        Borough.STATEN_ISLAND: (40.5795, -74.1502),
    }
)

BOROUGH_ZIP_RANGES = MappingProxyType(
    {
        Borough.MANHATTAN: (10001, 10282),
        Borough.BROOKLYN: (11201, 11256),
        Borough.QUEENS: (11101, 11697),
        Borough.BRONX: (10451, 10475),
        Borough.STATEN_ISLAND: (10301, 10314),
    }
)

# min_lat, min_lon, max_lat, max_lon
NYC_BBOX = (40.4774, -74.2591, 40.9176, -73.7004)


def resolve_borough(text: object) -> Borough | None:
    if not isinstance(text, str):
        return None
    trimmed = text.strip()
    if not trimmed:
        return None
    exact = _CANONICAL_NAMES.get(trimmed)
    if exact is not None:
        return exact
    return BOROUGH_ALIASES.get(trimmed.lower())


def canonicalize_borough(text: object) -> Borough:
    borough = resolve_borough(text)
    if borough is None:
        raise ValidationError(f"Unresolvable borough: {text!r}")
    return borough


def borough_centroid(borough: Borough) -> tuple[float, float]:
    return BOROUGH_CENTROIDS[borough]


def within_nyc(lat: float, lon: float) -> bool:
    min_lat, min_lon, max_lat, max_lon = NYC_BBOX
    return min_lat <= lat <= max_lat and min_lon <= lon <= max_lon
