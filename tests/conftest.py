"""
Shared pytest fixtures: fake providers, a temporary result cache and
prebuilt services.
"""

import asyncio
from typing import Any, Dict, List, Optional

import pytest

from app.analyzers import (
    CrimeAnalyzer,
    DevelopmentAnalyzer,
    PropertyValuesAnalyzer,
    ProximityAnalyzer,
    SchoolsAnalyzer,
    TransitAnalyzer,
)
from app.config import Settings
from app.dependencies import Services
from app.models import Amenity, AmenityType, Coordinates, Factor, FactorResult, LeadRecord
from app.services.analysis import AnalysisOrchestrator
from app.services.cache import ResultCache
from app.services.geocoder import Geocoder
from app.services.lead_scoring import LeadScorer
from app.services.leads import InMemoryLeadSource
from app.services.scoring import ScoreEngine

# Chicago Loop
ORIGIN = Coordinates(longitude=-87.6298, latitude=41.8781)

# Roughly 111 m per 0.001 degree of latitude
METERS_PER_MILLIDEGREE_LAT = 111.2


def north_of(origin: Coordinates, meters: float) -> Dict[str, float]:
    """lat/lon of a point `meters` due north of origin."""
    return {"lat": origin.latitude + meters / METERS_PER_MILLIDEGREE_LAT / 1000, "lon": origin.longitude}


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeGeoProvider:
    """Geodata provider returning a fixed amenity list."""

    def __init__(self, amenities: Optional[List[Amenity]] = None):
        self.amenities = amenities or []
        self.calls = 0

    async def find_amenities(self, coordinates, radius_meters):
        self.calls += 1
        return list(self.amenities)

    async def find_transit_stations(self, coordinates, radius_meters):
        self.calls += 1
        return [a for a in self.amenities if a.type == AmenityType.TRANSIT_STATION]


class FakeRecords:
    """Record provider for crime incidents and permits."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records = records or []
        self.calls = 0

    async def fetch_records(self, coordinates, radius_meters, lookback_days):
        self.calls += 1
        return list(self.records)


class FakePropertyValues:
    def __init__(self, data: Dict[str, Any]):
        self.data = data

    async def fetch_values(self, coordinates, radius_meters):
        return dict(self.data)


class FakeSchools:
    def __init__(self, schools: List[Dict[str, Any]]):
        self.schools = schools

    async def find_schools(self, coordinates, radius_meters):
        return list(self.schools)


class FakeGeocoding:
    name = "fake"

    def __init__(self, results: Optional[Dict[str, List[float]]] = None):
        self.results = results or {}
        self.calls = 0

    async def geocode(self, address):
        self.calls += 1
        return self.results.get(address)


class SlowAnalyzer:
    """Analyzer that never finishes on its own; records cancellation."""

    def __init__(self, factor: Factor, delay: float = 3600):
        self.factor = factor
        self.delay = delay
        self.started = asyncio.Event()
        self.cancelled = False
        self.is_configured = True

    def providers(self):
        return []

    async def analyze(self, coordinates, radius_meters):
        self.started.set()
        try:
            await asyncio.sleep(self.delay)
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return FactorResult(factor=self.factor, score=60, confidence=1.0)


def sample_amenities(origin: Coordinates = ORIGIN) -> List[Amenity]:
    return [
        Amenity(type=AmenityType.SCHOOL, name="Jones College Prep", **north_of(origin, 300)),
        Amenity(type=AmenityType.GROCERY, name="Mariano's", **north_of(origin, 200)),
        Amenity(type=AmenityType.PARK, name="Grant Park", **north_of(origin, 400)),
        Amenity(type=AmenityType.RESTAURANT, name="Diner", **north_of(origin, 100)),
        Amenity(type=AmenityType.TRANSIT_STATION, name="Monroe", subtype="rail", **north_of(origin, 150)),
    ]


def permit_records(recent: int, prior: int) -> List[Dict[str, Any]]:
    """Permits issued roughly 30 days ago (recent) and 600 days ago (prior)."""
    from datetime import datetime, timedelta, timezone

    now = datetime.now(timezone.utc)
    recent_date = (now - timedelta(days=30)).strftime("%Y-%m-%dT%H:%M:%S.000")
    prior_date = (now - timedelta(days=600)).strftime("%Y-%m-%dT%H:%M:%S.000")
    return (
        [{"issue_date": recent_date, "permit_type": "PERMIT - NEW CONSTRUCTION"}] * recent
        + [{"issue_date": prior_date, "permit_type": "PERMIT - RENOVATION/ALTERATION"}] * prior
    )


def property_data(one_year: float, three_year: float) -> Dict[str, Any]:
    return {
        "median_value": 350000,
        "value_change": {"one_year": one_year, "three_year": three_year, "five_year": three_year * 1.5},
    }


def make_analyzers(
    amenities: Optional[List[Amenity]] = None,
    permits: Optional[List[Dict[str, Any]]] = None,
    values: Optional[Dict[str, Any]] = None,
    crimes: Optional[List[Dict[str, Any]]] = None,
    schools: Optional[List[Dict[str, Any]]] = None,
):
    geo = FakeGeoProvider(sample_amenities() if amenities is None else amenities)
    return {
        Factor.PROXIMITY: ProximityAnalyzer(geo),
        Factor.SCHOOLS: SchoolsAnalyzer(FakeSchools(schools) if schools is not None else None),
        Factor.TRANSIT: TransitAnalyzer(geo),
        Factor.CRIME: CrimeAnalyzer(FakeRecords(crimes or [])),
        Factor.DEVELOPMENT: DevelopmentAnalyzer(FakeRecords(permit_records(0, 0) if permits is None else permits)),
        Factor.PROPERTY_VALUES: PropertyValuesAnalyzer(FakePropertyValues(values or property_data(2.0, 6.0))),
    }


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(tmp_path, clock):
    """Initialized result cache in a temporary directory."""
    result_cache = ResultCache(str(tmp_path / "cache"), default_ttl=3600, clock=clock)
    result_cache.initialize()
    yield result_cache
    result_cache.close()


@pytest.fixture
def engine():
    return ScoreEngine()


@pytest.fixture
def geocoder():
    return Geocoder(FakeGeocoding({"233 S Wacker Dr, Chicago, IL": [-87.6359, 41.8789]}))


@pytest.fixture
def orchestrator(cache, geocoder, engine):
    return AnalysisOrchestrator(
        analyzers=make_analyzers(),
        engine=engine,
        cache=cache,
        geocoder=geocoder,
        analyzer_timeout=1.0,
        cache_ttl=3600,
    )


@pytest.fixture
def hot_lead():
    return LeadRecord(
        id="lead-hot",
        phone_numbers=["3125550100", "3125550101", "3125550102"],
        email="owner@example.com",
        name="Maria Lopez",
        first_name="Maria",
        last_name="Lopez",
        address="1500 N Dearborn St, Chicago, IL",
        address_verified=True,
        state="IL",
        county="Cook",
        verification_status="verified",
        ownership_verified=True,
    )


@pytest.fixture
def cold_lead():
    return LeadRecord(id="lead-cold", verification_status="pending", ownership_verified=False)


@pytest.fixture
def services(tmp_path, cache, geocoder, orchestrator, engine):
    lead_source = InMemoryLeadSource()
    return Services(
        cache=cache,
        engine=engine,
        geocoder=geocoder,
        orchestrator=orchestrator,
        lead_scorer=LeadScorer(engine=engine, cache=cache, lead_source=lead_source),
        lead_source=lead_source,
    )


@pytest.fixture
def settings(tmp_path):
    return Settings(cache_directory=str(tmp_path / "app-cache"), _env_file=None)
