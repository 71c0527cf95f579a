"""Last-resort synthetic records.

Used only when every live strategy of a source has failed, so downstream
consumers never have to special-case "no data". Structure is deterministic
(boroughs round-robin, catalog entries by index); values come from the
injected ``random.Random`` so a fixed seed reproduces the output exactly.
"""

from __future__ import annotations

import random
from typing import Callable

from civicdata.common.aqi import calculate_aqi
from civicdata.common.boroughs import BOROUGH_ZIP_RANGES, Borough, borough_centroid
from civicdata.common.constants import SYNTHETIC_PROVENANCE
from civicdata.common.errors import ConfigError
from civicdata.common.ids import record_id
from civicdata.common.models import CanonicalRecord, EnvironmentalIndicator, Facility, HealthIndicator
from civicdata.common.time_utils import utc_timestamp_iso

COORDINATE_JITTER = 0.04
BOROUGH_ORDER = tuple(Borough)

HEALTH_CONDITIONS = (
    "Heart Disease",
    "Diabetes",
    "Hypertension",
    "Cancer",
    "Stroke",
    "COPD",
    "Asthma",
    "Mental Health",
    "Obesity",
    "Substance Abuse",
)
AGE_GROUPS = ("0-17", "18-34", "35-64", "65+")
RACE_ETHNICITIES = ("White", "Black", "Hispanic", "Asian", "Other")
CARDIOMETABOLIC = {"Heart Disease", "Diabetes", "Hypertension"}
AGE_RELATED = {"Heart Disease", "Stroke", "Cancer"}

# label, table key, unit, plausible concentration range
POLLUTANTS = (
    ("PM2.5", "pm25", "mcg/m3", (4.0, 40.0)),
    ("O3", "ozone", "ppb", (18.0, 80.0)),
    ("NO2", "no2", "ppb", (8.0, 60.0)),
)

COMPLAINT_RELEVANCE = {
    "Air Quality": 9,
    "Water Quality": 8,
    "Food Poisoning": 10,
    "Unsanitary Condition": 7,
    "Rodent": 6,
    "Noise - Residential": 4,
}
COMPLAINT_DESCRIPTORS = {
    "Air Quality": ("Air: Smoke, Vehicle", "Air: Odor/Fumes, Restaurant"),
    "Water Quality": ("Cloudy Or Milky Water", "Taste/Odor, Chemical"),
    "Food Poisoning": ("1 or 2", "3 or More"),
    "Unsanitary Condition": ("PESTS", "GARBAGE"),
    "Rodent": ("Rat Sighting", "Mouse Sighting"),
    "Noise - Residential": ("Loud Music/Party", "Banging/Pounding"),
}

PARKS = {
    Borough.MANHATTAN: (
        ("Central Park", 843.0, "Community Park"),
        ("Washington Square Park", 9.75, "Neighborhood Park"),
        ("Bryant Park", 9.6, "Neighborhood Park"),
        ("Madison Square Park", 6.2, "Neighborhood Park"),
        ("Riverside Park", 330.0, "Waterfront"),
    ),
    Borough.BROOKLYN: (
        ("Prospect Park", 526.0, "Community Park"),
        ("Brooklyn Bridge Park", 85.0, "Waterfront"),
        ("McCarren Park", 35.8, "Community Park"),
        ("Fort Greene Park", 30.2, "Neighborhood Park"),
        ("Sunset Park", 24.5, "Neighborhood Park"),
    ),
    Borough.QUEENS: (
        ("Flushing Meadows Corona Park", 897.0, "Community Park"),
        ("Forest Park", 538.0, "Community Park"),
        ("Astoria Park", 59.5, "Community Park"),
        ("Cunningham Park", 358.0, "Community Park"),
        ("Alley Pond Park", 655.0, "Community Park"),
    ),
    Borough.BRONX: (
        ("Bronx Park", 718.0, "Community Park"),
        ("Van Cortlandt Park", 1146.0, "Community Park"),
        ("Pelham Bay Park", 2772.0, "Community Park"),
        ("Crotona Park", 127.5, "Community Park"),
        ("St. Mary's Park", 34.4, "Neighborhood Park"),
    ),
    Borough.STATEN_ISLAND: (
        ("Great Kills Park", 580.0, "Waterfront"),
        ("Clove Lakes Park", 193.0, "Community Park"),
        ("Wolfe's Pond Park", 302.0, "Waterfront"),
        ("Silver Lake Park", 209.0, "Community Park"),
        ("Snug Harbor Cultural Center", 83.0, "Garden"),
    ),
}

FOOD_RETAIL = {
    Borough.MANHATTAN: (
        ("Whole Foods Market", "Supermarket"),
        ("Trader Joe's", "Supermarket"),
        ("Gristedes", "Grocery Store"),
        ("Union Square Greenmarket", "Farmers Market"),
        ("Local Bodega", "Bodega"),
    ),
    Borough.BROOKLYN: (
        ("ShopRite", "Supermarket"),
        ("Key Food", "Grocery Store"),
        ("Park Slope Food Coop", "Food Co-op"),
        ("Brooklyn Farmers Market", "Farmers Market"),
        ("Neighborhood Grocery", "Corner Store"),
    ),
    Borough.QUEENS: (
        ("Stop & Shop", "Supermarket"),
        ("Associated Supermarket", "Grocery Store"),
        ("Queens Night Market", "Farmers Market"),
        ("Local Market", "Corner Store"),
        ("Fresh Direct Pickup", "Supermarket"),
    ),
    Borough.BRONX: (
        ("Concourse Plaza Market", "Supermarket"),
        ("Bronx Terminal Market", "Grocery Store"),
        ("Hunts Point Market", "Farmers Market"),
        ("Corner Deli", "Bodega"),
        ("Community Garden Store", "Food Co-op"),
    ),
    Borough.STATEN_ISLAND: (
        ("ShopRite Staten Island", "Supermarket"),
        ("Stop & Shop SI", "Supermarket"),
        ("Staten Island Mall Food Court", "Corner Store"),
        ("St. George Market", "Farmers Market"),
        ("Local Grocery", "Grocery Store"),
    ),
}

SOCIAL_SERVICES = {
    Borough.MANHATTAN: (
        ("Manhattan SNAP Center", "SNAP Office"),
        ("Lower East Side Community Center", "Community Center"),
        ("Harlem Food Bank", "Food Bank"),
        ("Chelsea WIC Office", "WIC Office"),
        ("Midtown Social Services", "Social Services"),
    ),
    Borough.BROOKLYN: (
        ("Brooklyn SNAP Center", "SNAP Office"),
        ("Bedford-Stuyvesant Community Center", "Community Center"),
        ("Brooklyn Food Pantry", "Food Bank"),
        ("Sunset Park WIC", "WIC Office"),
        ("Crown Heights Social Services", "Social Services"),
    ),
    Borough.QUEENS: (
        ("Queens SNAP Center", "SNAP Office"),
        ("Flushing Community Center", "Community Center"),
        ("Astoria Food Bank", "Food Bank"),
        ("Jackson Heights WIC", "WIC Office"),
        ("Elmhurst Social Services", "Social Services"),
    ),
    Borough.BRONX: (
        ("Bronx SNAP Center", "SNAP Office"),
        ("South Bronx Community Center", "Community Center"),
        ("Hunts Point Food Bank", "Food Bank"),
        ("Fordham WIC Office", "WIC Office"),
        ("Mott Haven Social Services", "Social Services"),
    ),
    Borough.STATEN_ISLAND: (
        ("Staten Island SNAP Center", "SNAP Office"),
        ("St. George Community Center", "Community Center"),
        ("Staten Island Food Bank", "Food Bank"),
        ("Stapleton WIC Office", "WIC Office"),
        ("Port Richmond Social Services", "Social Services"),
    ),
}

RETAIL_HOURS = (
    "24/7",
    "6 AM - 11 PM",
    "7 AM - 10 PM",
    "8 AM - 9 PM",
    "9 AM - 8 PM",
    "10 AM - 7 PM (Weekends: 9 AM - 8 PM)",
)
SERVICE_HOURS = {
    "SNAP Office": ("Mon-Fri 8 AM - 5 PM", "Mon-Fri 9 AM - 4 PM", "Mon-Thu 8 AM - 6 PM, Fri 8 AM - 4 PM"),
    "Community Center": ("Mon-Fri 9 AM - 8 PM, Sat 10 AM - 4 PM", "Daily 8 AM - 9 PM"),
    "Social Services": ("Mon-Fri 8:30 AM - 4:30 PM", "Mon-Wed-Fri 9 AM - 5 PM, Tue-Thu 9 AM - 7 PM"),
    "Food Bank": ("Mon-Fri 10 AM - 6 PM, Sat 9 AM - 3 PM", "Tue-Thu 11 AM - 7 PM, Sat 10 AM - 2 PM"),
    "WIC Office": ("Mon-Fri 8 AM - 4 PM", "Mon-Thu 8 AM - 6 PM, Fri 8 AM - 3 PM"),
}
DEFAULT_SERVICE_HOURS = ("Mon-Fri 9 AM - 5 PM",)


def generate_phone(rng: random.Random) -> str:
    return f"({rng.randint(200, 999)}) {rng.randint(200, 999)}-{rng.randint(1000, 9999)}"


def generate_retail_hours(rng: random.Random) -> str:
    return rng.choice(RETAIL_HOURS)


def generate_service_hours(rng: random.Random, facility_type: str) -> str:
    return rng.choice(SERVICE_HOURS.get(facility_type, DEFAULT_SERVICE_HOURS))


def generate_zip_code(rng: random.Random, borough: Borough) -> str:
    low, high = BOROUGH_ZIP_RANGES[borough]
    return str(rng.randint(low, high))


def jittered_point(rng: random.Random, borough: Borough) -> tuple[float, float]:
    lat, lon = borough_centroid(borough)
    return (
        round(lat + rng.uniform(-COORDINATE_JITTER, COORDINATE_JITTER), 6),
        round(lon + rng.uniform(-COORDINATE_JITTER, COORDINATE_JITTER), 6),
    )


def _pick(catalog: dict[Borough, tuple], index: int) -> tuple[Borough, tuple, int]:
    borough = BOROUGH_ORDER[index % len(BOROUGH_ORDER)]
    entries = catalog[borough]
    slot = index // len(BOROUGH_ORDER)
    return borough, entries[slot % len(entries)], slot // len(entries)


def _health(rng: random.Random, source_name: str, index: int, captured_at: str) -> CanonicalRecord:
    borough = BOROUGH_ORDER[index % len(BOROUGH_ORDER)]
    step = index // len(BOROUGH_ORDER)
    condition = HEALTH_CONDITIONS[step % len(HEALTH_CONDITIONS)]
    age_group = AGE_GROUPS[(step // len(HEALTH_CONDITIONS)) % len(AGE_GROUPS)]
    race = RACE_ETHNICITIES[(step // (len(HEALTH_CONDITIONS) * len(AGE_GROUPS))) % len(RACE_ETHNICITIES)]

    rate = rng.uniform(0.0, 60.0)
    if borough is Borough.BRONX and condition in CARDIOMETABOLIC:
        rate += 15
    if borough is Borough.MANHATTAN and condition == "Mental Health":
        rate += 10
    if race == "Black" and condition in CARDIOMETABOLIC:
        rate += 20
    if age_group == "65+" and condition in AGE_RELATED:
        rate += 25
    rate = round(min(rate, 95.0), 1)

    lat, lon = jittered_point(rng, borough)
    return HealthIndicator(
        record_id=record_id(source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=rate,
        unit="percent",
        category=condition,
        indicator=condition,
        age_group=age_group,
        race_ethnicity=race,
        year=2023,
        zip_code=generate_zip_code(rng, borough),
        provenance=SYNTHETIC_PROVENANCE,
        captured_at=captured_at,
    )


def _air_quality(rng: random.Random, source_name: str, index: int, captured_at: str) -> CanonicalRecord:
    borough = BOROUGH_ORDER[index % len(BOROUGH_ORDER)]
    label, key, unit, (low, high) = POLLUTANTS[(index // len(BOROUGH_ORDER)) % len(POLLUTANTS)]
    concentration = round(rng.uniform(low, high), 1)
    reading = calculate_aqi(key, concentration)
    lat, lon = jittered_point(rng, borough)
    return EnvironmentalIndicator(
        record_id=record_id(source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=concentration,
        unit=unit,
        category=label,
        indicator=label,
        aqi=reading.index,
        aqi_category=reading.category,
        geo_type="Borough",
        zip_code=generate_zip_code(rng, borough),
        provenance=SYNTHETIC_PROVENANCE,
        captured_at=captured_at,
    )


def _service_requests(rng: random.Random, source_name: str, index: int, captured_at: str) -> CanonicalRecord:
    borough = BOROUGH_ORDER[index % len(BOROUGH_ORDER)]
    complaint_types = tuple(COMPLAINT_RELEVANCE)
    complaint = complaint_types[(index // len(BOROUGH_ORDER)) % len(complaint_types)]
    lat, lon = jittered_point(rng, borough)
    return EnvironmentalIndicator(
        record_id=record_id(source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=float(COMPLAINT_RELEVANCE[complaint]),
        unit="relevance",
        category=complaint,
        indicator=rng.choice(COMPLAINT_DESCRIPTORS[complaint]),
        zip_code=generate_zip_code(rng, borough),
        provenance=SYNTHETIC_PROVENANCE,
        captured_at=captured_at,
    )


def _parks(rng: random.Random, source_name: str, index: int, captured_at: str) -> CanonicalRecord:
    borough, (name, acres, park_type), cycle = _pick(PARKS, index)
    if cycle:
        name = f"{name} Section {cycle + 1}"
        acres = round(acres / 3, 1)
    lat, lon = jittered_point(rng, borough)
    return Facility(
        record_id=record_id(source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        value=acres,
        unit="acres",
        category=park_type,
        name=name,
        hours="6 AM - 1 AM",
        zip_code=generate_zip_code(rng, borough),
        provenance=SYNTHETIC_PROVENANCE,
        captured_at=captured_at,
    )


def _food_retail(rng: random.Random, source_name: str, index: int, captured_at: str) -> CanonicalRecord:
    borough, (name, store_type), cycle = _pick(FOOD_RETAIL, index)
    lat, lon = jittered_point(rng, borough)
    return Facility(
        record_id=record_id(source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        category=store_type,
        name=f"{name} #{cycle + 1}",
        hours=generate_retail_hours(rng),
        zip_code=generate_zip_code(rng, borough),
        provenance=SYNTHETIC_PROVENANCE,
        captured_at=captured_at,
    )


def _social_services(rng: random.Random, source_name: str, index: int, captured_at: str) -> CanonicalRecord:
    borough, (name, facility_type), cycle = _pick(SOCIAL_SERVICES, index)
    if cycle:
        name = f"{name} - Location {cycle + 1}"
    lat, lon = jittered_point(rng, borough)
    return Facility(
        record_id=record_id(source_name, index),
        borough=borough,
        latitude=lat,
        longitude=lon,
        category=facility_type,
        name=name,
        phone=generate_phone(rng),
        hours=generate_service_hours(rng, facility_type),
        zip_code=generate_zip_code(rng, borough),
        provenance=SYNTHETIC_PROVENANCE,
        captured_at=captured_at,
    )


PROFILE_BUILDERS: dict[str, Callable[[random.Random, str, int, str], CanonicalRecord]] = {
    "health": _health,
    "air_quality": _air_quality,
    "service_requests": _service_requests,
    "parks": _parks,
    "food_retail": _food_retail,
    "social_services": _social_services,
}

PROFILE_DOMAINS = {
    "health": "health",
    "air_quality": "environmental",
    "service_requests": "environmental",
    "parks": "facility",
    "food_retail": "facility",
    "social_services": "facility",
}


class SyntheticDataGenerator:
    def __init__(self, profile: str, rng: random.Random | None = None, seed: int | None = None) -> None:
        if profile not in PROFILE_BUILDERS:
            raise ConfigError(f"Unknown synthetic profile: {profile}")
        self.profile = profile
        self.rng = rng if rng is not None else random.Random(seed)

    @property
    def domain(self) -> str:
        return PROFILE_DOMAINS[self.profile]

    def generate(self, source_name: str, count: int, *, captured_at: str | None = None) -> list[CanonicalRecord]:
        if count < 1:
            raise ValueError("synthetic record count must be at least 1")
        build = PROFILE_BUILDERS[self.profile]
        stamp = captured_at or utc_timestamp_iso()
        return [build(self.rng, source_name, index, stamp) for index in range(count)]
