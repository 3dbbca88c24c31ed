"""
Country emissions: fetch from Climate TRACE and normalize units.

Raw values arrive in tonnes-of-gas scaled such that CO2-family gases divide
by 1e6 to give megatonnes and CH4/N2O divide by 1e3 to give kilotonnes.
"""
import logging
import math
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from cache import TTLCache
from climate_trace import ClimateTraceClient, as_mapping, as_number, as_rows, join_codes
from emitters import TopEmitterResolver, is_country_code
from errors import UpstreamError
from tables import GAS_DIVISORS, GAS_INFO

logger = logging.getLogger(__name__)

SOURCE = "Data Source: Climate TRACE"
PROVIDER = "Climate TRACE Coalition"
TOP_COUNTRIES = 20


def round_half_up(x: float, ndigits: int = 0):
    """Round halves up (toward +inf), matching Math.round on the dashboard side."""
    if ndigits == 0:
        return int(math.floor(x + 0.5))
    m = 10 ** ndigits
    return math.floor(x * m + 0.5) / m


def convert(gas: str, raw) -> int:
    return round_half_up(as_number(raw) / GAS_DIVISORS[gas])


def normalize_gases(raw: Optional[dict]) -> Dict[str, int]:
    raw = as_mapping(raw)
    return {gas: convert(gas, raw.get(gas)) for gas in GAS_DIVISORS}


def share_of(co2, world_co2) -> float:
    world = as_number(world_co2)
    if world <= 0:
        return 0
    return round_half_up(as_number(co2) / world * 100, 2)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_records(data, name_of: Callable[[str], str]) -> List[dict]:
    """Raw ``country/emissions`` rows -> EmissionRecords sorted by CO2 desc.

    Rows that are not objects, or whose country is missing or ``"all"``,
    are dropped. Non-numeric gas values count as 0.
    """
    countries = []
    for d in as_rows(data):
        code = d.get("country")
        if not code or not isinstance(code, str) or code == "all":
            continue
        emissions = as_mapping(d.get("emissions"))
        world = as_mapping(d.get("worldEmissions"))
        countries.append({
            "country": code,
            "name": name_of(code),
            "rank": d.get("rank"),
            "previousRank": d.get("previousRank"),
            "emissions": normalize_gases(emissions),
            "share": share_of(emissions.get("co2"), world.get("co2")),
        })
    countries.sort(key=lambda c: c["emissions"]["co2"], reverse=True)
    return countries


def world_totals(data) -> Dict[str, int]:
    rows = as_rows(data)
    return normalize_gases(rows[0].get("worldEmissions") if rows else None)


def empty_response(since: int, to: int) -> dict:
    return {
        "year": to,
        "yearRange": {"since": since, "to": to},
        "source": f"{SOURCE} (Unavailable)",
        "dataProvider": PROVIDER,
        "lastUpdated": _now_iso(),
        "apiStatus": "error",
        "worldTotals": {gas: 0 for gas in GAS_DIVISORS},
        "countries": [],
        "topCountries": [],
    }


def _gas_block(gas: str, raw) -> dict:
    unit, name = GAS_INFO[gas]
    return {"value": convert(gas, raw), "unit": unit, "name": name}


class EmissionsFetcher:
    def __init__(self, client: ClimateTraceClient, resolver: TopEmitterResolver, cache: TTLCache,
                 name_of: Callable[[str], str]):
        self.client = client
        self.resolver = resolver
        self.cache = cache
        self.name_of = name_of

    def process(self, data, since: int, to: int) -> dict:
        countries = normalize_records(data, self.name_of)
        return {
            "year": to,
            "yearRange": {"since": since, "to": to},
            "source": SOURCE,
            "dataProvider": PROVIDER,
            "lastUpdated": _now_iso(),
            "apiStatus": "live",
            "worldTotals": world_totals(data),
            "countries": countries,
            "topCountries": countries[:TOP_COUNTRIES],
        }

    def fetch_country_emissions(self, since: int, to: int, countries=None, limit: int = 50) -> dict:
        """Emission records for ``countries`` (or the top ``limit`` emitters).

        Upstream failure yields ``empty_response`` with ``apiStatus: "error"``.
        """
        codes = join_codes(countries)
        key = ("emissions", since, to, codes or "top", limit)
        hit = self.cache.get(key)
        if hit is not None:
            logger.info("Using cached emissions data")
            return hit

        logger.info("Fetching emissions data (%s-%s) from Climate TRACE", since, to)
        query = codes or self.resolver.resolve_top_emitters(since, to, limit)
        try:
            data = self.client.country_emissions(since, to, query)
        except UpstreamError as e:
            logger.warning("Failed to fetch emissions: %s", e)
            return empty_response(since, to)

        processed = self.process(data, since, to)
        self.cache.set(key, processed)
        logger.info("Loaded emissions for %d countries", len(processed["countries"]))
        return processed

    def fetch_all_gases(self, since: int, to: int, limit: int = 30) -> dict:
        """Every tracked gas per country with units, sorted by CO2e (100yr)."""
        key = ("gases", since, to, "top", limit)
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        logger.info("Fetching all gases emissions (%s-%s)", since, to)
        top = self.resolver.resolve_top_emitters(since, to, limit)
        try:
            data = self.client.country_emissions(since, to, top)
        except UpstreamError as e:
            logger.warning("Failed to fetch all gases: %s", e)
            return {"countries": [], "worldTotals": {}, "apiStatus": "error"}

        rows = as_rows(data)
        countries = []
        for d in rows:
            if not is_country_code(d.get("country")):
                continue
            raw = as_mapping(d.get("emissions"))
            countries.append({
                "country": d["country"],
                "name": self.name_of(d["country"]),
                "rank": d.get("rank"),
                "gases": {gas: _gas_block(gas, raw.get(gas)) for gas in GAS_INFO},
            })
        countries.sort(key=lambda c: c["gases"]["co2e_100yr"]["value"], reverse=True)

        world = as_mapping(rows[0].get("worldEmissions") if rows else None)
        result = {
            "year": to,
            "yearRange": {"since": since, "to": to},
            "source": SOURCE,
            "lastUpdated": _now_iso(),
            "apiStatus": "live",
            "worldTotals": {gas: _gas_block(gas, world.get(gas)) for gas in GAS_INFO},
            "countries": countries,
        }
        self.cache.set(key, result)
        return result
