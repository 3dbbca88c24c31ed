"""Pytest configuration and shared fixtures.

Nothing here touches the network: ``FakeSession`` stands in for a
``requests.Session`` and answers Climate TRACE endpoints from canned data.
"""
import threading

import pytest

from service import EmissionsService
from settings import Settings

BASE_URL = "https://api.test/v6"

COUNTRY_DEFS = [
    {"alpha3": "CHN", "name": "China", "continent": "Asia"},
    {"alpha3": "USA", "name": "United States", "continent": "North America"},
    {"alpha3": "IND", "name": "India", "continent": "Asia"},
    {"alpha3": "DEU", "name": "Germany", "continent": "Europe"},
    {"alpha3": "BRA", "name": "Brazil", "continent": "South America"},
    {"alpha3": "XKX", "name": "Kosovo", "continent": None},
]

SECTOR_DEFS = [{"name": "power"}, {"name": "manufacturing"}, {"name": "transportation"}]

# Megatonnes of CO2 per country; the raw feed carries these * 1e6
CO2_MT = {"CHN": 12000, "USA": 5000, "IND": 3000, "DEU": 600, "BRA": 480, "XKX": 12}
WORLD_CO2_MT = 40000


def world_emissions(co2_mt=WORLD_CO2_MT):
    return {
        "co2": co2_mt * 1e6,
        "ch4": 360000 * 1e3,
        "n2o": 9000 * 1e3,
        "co2e_100yr": 55000 * 1e6,
        "co2e_20yr": 65000 * 1e6,
    }


def emission_row(code, co2_mt, world_co2_mt=WORLD_CO2_MT, rank=None):
    return {
        "country": code,
        "rank": rank,
        "previousRank": rank,
        "emissions": {
            "co2": co2_mt * 1e6,
            "ch4": co2_mt * 2 * 1e3,
            "n2o": co2_mt // 10 * 1e3,
            "co2e_100yr": co2_mt * 1.3 * 1e6,
            "co2e_20yr": co2_mt * 1.5 * 1e6,
        },
        "worldEmissions": world_emissions(world_co2_mt),
    }


def country_emissions_handler(co2_mt=None):
    co2_mt = co2_mt or CO2_MT

    def handler(params):
        wanted = params.get("countries")
        codes = wanted.split(",") if wanted else list(co2_mt)
        ranked = sorted(co2_mt, key=co2_mt.get, reverse=True)
        return [emission_row(c, co2_mt[c], rank=ranked.index(c) + 1) for c in codes if c in co2_mt]
    return handler


ASSET_FEED = {
    "CHN": [
        {"Sector": "power", "Gas": "co2e_100yr", "Emissions": 5000e6},
        {"Sector": "power", "Gas": "co2", "Emissions": 4800e6},
        {"Sector": "steel", "Gas": "co2e_100yr", "Emissions": 2000e6},
        {"Sector": "road-transportation", "Gas": "co2e_100yr", "Emissions": 1000e6},
    ],
    "USA": [
        {"Sector": "power", "Gas": "co2e_100yr", "Emissions": 1500e6},
        {"Sector": "road-transportation", "Gas": "co2e_100yr", "Emissions": 1400e6},
        {"Sector": "mineral-extraction", "Gas": "co2e_100yr", "Emissions": 100e6},
    ],
}


class FakeResponse:
    def __init__(self, payload=None, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    """Routes ``<base>/<endpoint>`` to canned payloads and records every call.

    A route value is a payload, a FakeResponse, an exception to raise, or a
    callable taking the query params and returning any of those.
    """

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []
        self._lock = threading.Lock()

    def get(self, url, params=None, timeout=None):
        endpoint = url.split("/v6/", 1)[1]
        params = dict(params or {})
        with self._lock:
            self.calls.append((endpoint, params))
        result = self.routes.get(endpoint, FakeResponse(status_code=404))
        if callable(result):
            result = result(params)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, FakeResponse):
            return result
        return FakeResponse(result)

    def count(self, endpoint):
        with self._lock:
            return sum(1 for e, _ in self.calls if e == endpoint)


class ManualClock:
    def __init__(self, start=1_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def settings():
    return Settings(
        base_url=BASE_URL,
        cache_ttl_sec=1800,
        timeout=5,
        batch_size=50,
        max_workers=4,
        max_retries=0,
        serper_api_key="",
        cors_origins=["http://localhost:5173"],
    )


@pytest.fixture
def routes():
    return {
        "definitions/countries": list(COUNTRY_DEFS),
        "definitions/sectors": list(SECTOR_DEFS),
        "definitions/continents": [{"name": "Asia"}, {"name": "Europe"}],
        "country/emissions": country_emissions_handler(),
        "assets/emissions": ASSET_FEED,
    }


@pytest.fixture
def session(routes):
    return FakeSession(routes)


@pytest.fixture
def service(settings, session, clock):
    return EmissionsService(settings, session=session, clock=clock)


@pytest.fixture
def down_service(settings, clock):
    """Service whose upstream answers 500 to everything."""
    down = FakeSession({e: FakeResponse(status_code=500) for e in (
        "definitions/countries", "definitions/sectors", "definitions/continents",
        "country/emissions", "assets/emissions")})
    return EmissionsService(settings, session=down, clock=clock)
