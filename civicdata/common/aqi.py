"""Air-quality index calculation from pollutant concentrations.

The breakpoint tables are simplified, fixed constants. The Ozone table in
particular uses widened upper bands and a capped scale that differ from the
published EPA table; they are kept as-is rather than corrected.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from types import MappingProxyType

from civicdata.common.errors import MetricError

AQI_MIN = 0
AQI_MAX = 500


@dataclass(frozen=True)
class Breakpoint:
    conc_low: float
    conc_high: float
    index_low: int
    index_high: int


@dataclass(frozen=True)
class AqiReading:
    index: int
    category: str


PM25 = "pm25"
OZONE = "ozone"
NO2 = "no2"

BREAKPOINT_TABLES = MappingProxyType(
    {
        # ug/m3, 24-hour average
        PM25: (
            Breakpoint(0.0, 12.0, 0, 50),
            Breakpoint(12.1, 35.4, 51, 100),
            Breakpoint(35.5, 55.4, 101, 150),
            Breakpoint(55.5, 150.4, 151, 200),
            Breakpoint(150.5, 250.4, 201, 300),
            Breakpoint(250.5, 500.4, 301, 500),
        ),
        # ppb, 8-hour average
        OZONE: (
            Breakpoint(0.0, 54.0, 0, 50),
            Breakpoint(55.0, 70.0, 51, 100),
            Breakpoint(71.0, 85.0, 101, 150),
            Breakpoint(86.0, 105.0, 151, 200),
            Breakpoint(106.0, 200.0, 201, 300),
        ),
        # ppb
        NO2: (
            Breakpoint(0.0, 53.0, 0, 50),
            Breakpoint(54.0, 100.0, 51, 100),
            Breakpoint(101.0, 360.0, 101, 150),
            Breakpoint(361.0, 649.0, 151, 200),
        ),
    }
)

CATEGORY_THRESHOLDS = (
    (50, "Good"),
    (100, "Moderate"),
    (150, "Unhealthy for Sensitive Groups"),
    (200, "Unhealthy"),
)
TOP_CATEGORY = "Very Unhealthy"

_POLLUTANT_PATTERNS = (
    (re.compile(r"pm\s*2\.?5|fine particul", re.IGNORECASE), PM25),
    (re.compile(r"ozone|\bo3\b", re.IGNORECASE), OZONE),
    (re.compile(r"nitrogen dioxide|\bno2\b", re.IGNORECASE), NO2),
)


def pollutant_key(name: object) -> str | None:
    """Map a free-text pollutant label to a breakpoint table key."""
    if not isinstance(name, str):
        return None
    for pattern, key in _POLLUTANT_PATTERNS:
        if pattern.search(name):
            return key
    return None


def aqi_category(index: int) -> str:
    for upper, label in CATEGORY_THRESHOLDS:
        if index <= upper:
            return label
    return TOP_CATEGORY


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _select_breakpoint(table: tuple[Breakpoint, ...], concentration: float) -> tuple[Breakpoint, float]:
    for row in table:
        if concentration <= row.conc_high:
            # Values in the gap between two rows belong to the upper row.
            return row, max(concentration, row.conc_low)
    # Past the end of the table the last row is extrapolated, capped at AQI_MAX.
    return table[-1], concentration


def calculate_aqi(pollutant: str, concentration: float) -> AqiReading:
    table = BREAKPOINT_TABLES.get(pollutant)
    if table is None:
        raise MetricError(f"No breakpoint table registered for pollutant {pollutant!r}")
    try:
        concentration = float(concentration)
    except (TypeError, ValueError) as exc:
        raise MetricError(f"Concentration is not numeric: {concentration!r}") from exc
    if not math.isfinite(concentration) or concentration < 0:
        raise MetricError(f"Invalid concentration for {pollutant}: {concentration}")

    row, effective = _select_breakpoint(table, concentration)
    slope = (row.index_high - row.index_low) / (row.conc_high - row.conc_low)
    index = _round_half_up(row.index_low + slope * (effective - row.conc_low))
    index = max(AQI_MIN, min(AQI_MAX, index))
    return AqiReading(index=index, category=aqi_category(index))
