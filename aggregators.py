"""
Derived views over Climate TRACE data: sectors/industries, continents and
multi-year trends.
"""
import logging
import re
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from cache import TTLCache
from climate_trace import ClimateTraceClient, as_mapping, as_number, as_rows, join_codes
from emissions import EmissionsFetcher, convert, round_half_up
from emitters import TopEmitterResolver, is_country_code
from errors import UpstreamError
from registry import Registry
from tables import (
    DEFAULT_COLOR,
    FALLBACK_INDUSTRY_SHARES,
    INDUSTRIES,
    INDUSTRY_COLORS,
    INDUSTRY_GROUPS,
    REGION_COLORS,
    SECTOR_COLORS,
    SECTOR_LABELS,
    SLUG_TO_INDUSTRY,
)

logger = logging.getLogger(__name__)

SECTOR_GAS = "co2e_100yr"
REGION_BREAKDOWN = 10
REGION_TOP = 3


# ---------------------------------------------------------
# Sectors & industries
# ---------------------------------------------------------
def normalize_sector_name(slug: Optional[str]) -> str:
    if not slug:
        return "Other"
    label = SECTOR_LABELS.get(slug.lower())
    if label:
        return label
    return re.sub(r"\b\w", lambda m: m.group(0).upper(), slug.replace("-", " "))


def sector_color(name: str) -> str:
    return SECTOR_COLORS.get(name, DEFAULT_COLOR)


def _sector_rows(data):
    """Yield (slug, raw emissions) for every CO2e-100yr row of an asset feed."""
    if not isinstance(data, dict):
        return
    for rows in data.values():
        if not isinstance(rows, list):
            continue
        for e in as_rows(rows):
            if e.get("Gas") != SECTOR_GAS:
                continue
            slug = e.get("Sector")
            yield (slug if isinstance(slug, str) else None), as_number(e.get("Emissions"))


def aggregate_sectors(data) -> Tuple[List[dict], float]:
    """Sum the asset feed per sector label. Returns (sectors, raw total)."""
    totals: Dict[str, float] = {}
    for slug, value in _sector_rows(data):
        name = normalize_sector_name(slug)
        totals[name] = totals.get(name, 0) + value
    total = sum(totals.values())
    sectors = [
        {
            "name": name,
            "emissions": convert(SECTOR_GAS, raw),
            "percentage": round_half_up(raw / total * 100, 1) if total > 0 else 0,
            "color": sector_color(name),
        }
        for name, raw in totals.items()
    ]
    sectors = [s for s in sectors if s["emissions"] > 0]
    sectors.sort(key=lambda s: s["emissions"], reverse=True)
    return sectors, total


def group_sectors_to_industries(sectors: Sequence[dict],
                                groups: Mapping[str, Sequence[str]] = INDUSTRY_GROUPS,
                                colors: Mapping[str, str] = INDUSTRY_COLORS) -> List[dict]:
    """Roll sector records up into industries.

    Sectors whose name is in no group are left out. Industries with a zero
    total are omitted.
    """
    industries = []
    for industry, names in groups.items():
        members = [s for s in sectors if s["name"] in names]
        total = sum(s["emissions"] for s in members)
        if total <= 0:
            continue
        industries.append({
            "id": re.sub(r"\s+", "-", industry.lower()),
            "name": industry,
            "totalEmissions": total,
            "percentage": round_half_up(sum(s["percentage"] for s in members), 1),
            "color": colors.get(industry, DEFAULT_COLOR),
            "sectors": members,
        })
    industries.sort(key=lambda i: i["totalEmissions"], reverse=True)
    return industries


def industry_shares(data) -> Dict[str, float]:
    """Fraction of mapped CO2e per industry; sums to 1 unless nothing mapped."""
    totals = {industry: 0 for industry in INDUSTRIES}
    for slug, value in _sector_rows(data):
        industry = SLUG_TO_INDUSTRY.get((slug or "").lower())
        if industry:
            totals[industry] += value
    grand = sum(totals.values())
    shares = {i: (round_half_up(t / grand, 4) if grand > 0 else 0) for i, t in totals.items()}
    s = sum(shares.values())
    if s > 0:
        shares = {i: round_half_up(v / s, 4) for i, v in shares.items()}
    return shares


class SectorAggregator:
    def __init__(self, client: ClimateTraceClient, cache: TTLCache):
        self.client = client
        self.cache = cache

    def fetch_sector_emissions(self, since: int, to: int, countries=None) -> dict:
        codes = join_codes(countries)
        key = ("sectors", since, to, codes or "all")
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        logger.info("Fetching sector emissions (%s-%s)", since, to)
        try:
            data = self.client.asset_emissions(since, to, codes)
        except UpstreamError as e:
            logger.warning("Failed to fetch sector emissions: %s", e)
            return {"sectors": [], "industries": [], "total": 0, "apiStatus": "error"}
        sectors, total = aggregate_sectors(data)
        result = {
            "sectors": sectors,
            "industries": group_sectors_to_industries(sectors),
            "total": convert(SECTOR_GAS, total),
            "apiStatus": "live",
        }
        self.cache.set(key, result)
        return result

    def industry_breakdown(self, since: int, to: int) -> Dict[str, float]:
        key = ("industryBreakdown", since, to)
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        logger.info("Fetching industry breakdown (%s-%s)", since, to)
        try:
            data = self.client.asset_emissions(since, to)
        except UpstreamError as e:
            logger.warning("Failed to fetch industry breakdown, using fallback shares: %s", e)
            return dict(FALLBACK_INDUSTRY_SHARES)
        shares = industry_shares(data)
        self.cache.set(key, shares)
        logger.info("Calculated industry breakdown: %s", shares)
        return shares


# ---------------------------------------------------------
# Regions
# ---------------------------------------------------------
def pct(part, whole, ndigits: int = 1) -> float:
    return round_half_up(part / whole * 100, ndigits) if whole > 0 else 0


def build_regions(countries: Sequence[dict], continent_of: Mapping[str, str],
                  colors: Mapping[str, str] = REGION_COLORS) -> List[dict]:
    """Group EmissionRecords by continent.

    Countries with no continent are skipped. Region percentages use the sum
    of assigned countries as denominator, not the world total.
    """
    grouped: Dict[str, List[dict]] = {}
    assigned = 0
    for c in countries:
        continent = continent_of.get(c["country"])
        if not continent:
            continue
        grouped.setdefault(continent, []).append(c)
        assigned += c["emissions"]["co2"]

    regions = []
    for name, members in grouped.items():
        members = sorted(members, key=lambda c: c["emissions"]["co2"], reverse=True)
        region_total = sum(c["emissions"]["co2"] for c in members)
        regions.append({
            "name": name,
            "emissions": round_half_up(region_total),
            "color": colors.get(name, DEFAULT_COLOR),
            "countryCount": len(members),
            "countries": len(members),
            "percentage": pct(region_total, assigned),
            "topCountries": [c.get("name") or c["country"] for c in members[:REGION_TOP]],
            "countryBreakdown": [
                {
                    "name": c.get("name") or c["country"],
                    "code": c["country"],
                    "emissions": c["emissions"]["co2"],
                    "percentage": pct(c["emissions"]["co2"], region_total),
                }
                for c in members[:REGION_BREAKDOWN]
            ],
        })
    regions.sort(key=lambda r: r["emissions"], reverse=True)
    return regions


class RegionalAggregator:
    def __init__(self, fetcher: EmissionsFetcher, registry: Registry, cache: TTLCache):
        self.fetcher = fetcher
        self.registry = registry
        self.cache = cache

    def fetch_regional_emissions(self, since: int, to: int) -> dict:
        key = ("regions", since, to)
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        continent_of = self.registry.continent_map()
        logger.info("Mapped %d countries to continents", len(continent_of))
        data = self.fetcher.fetch_country_emissions(since, to, limit=100)
        result = {
            "regions": build_regions(data["countries"], continent_of),
            "topCountries": data["countries"][:20],
        }
        if data.get("apiStatus") == "live" and continent_of:
            self.cache.set(key, result)
        return result


# ---------------------------------------------------------
# Trends
# ---------------------------------------------------------
def build_trend_point(year: int, data, shares: Mapping[str, float], name_of: Callable[[str], str]) -> dict:
    """One year of trend data.

    Industry values are the year's world CO2 total times the window-level
    shares. Composition is held constant across the window; only the total
    moves from year to year.
    """
    rows = as_rows(data) if isinstance(data, list) else []
    world = as_mapping(rows[0].get("worldEmissions") if rows else None)
    total = convert("co2", world.get("co2"))
    point = {"year": year, "total": total}
    for industry in INDUSTRIES:
        point[industry] = round_half_up(total * shares.get(industry, 0))
    point["countries"] = [
        {
            "code": d["country"],
            "name": name_of(d["country"]),
            "co2": convert("co2", as_mapping(d.get("emissions")).get("co2")),
        }
        for d in rows if is_country_code(d.get("country"))
    ]
    return point


class TrendAggregator:
    def __init__(self, client: ClimateTraceClient, sectors: SectorAggregator, resolver: TopEmitterResolver,
                 cache: TTLCache, name_of: Callable[[str], str], max_workers: int = 8):
        self.client = client
        self.sectors = sectors
        self.resolver = resolver
        self.cache = cache
        self.name_of = name_of
        self.max_workers = max_workers

    def fetch_emissions_trends(self, start_year: int, end_year: int, countries=None) -> List[dict]:
        codes = join_codes(countries)
        key = ("trends", start_year, end_year, codes or "top5")
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        years = list(range(start_year, end_year + 1))
        if not years:
            return []

        logger.info("Fetching emissions trends (%s-%s)", start_year, end_year)
        shares = self.sectors.industry_breakdown(start_year, end_year)
        if not codes:
            codes = ",".join(self.resolver.resolve_top_emitters(start_year, end_year, 5))

        points: Dict[int, dict] = {}
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(years)))) as ex:
            futs = {ex.submit(self.client.country_emissions, y, y, codes): y for y in years}
            for fut in as_completed(futs):
                year = futs[fut]
                try:
                    points[year] = build_trend_point(year, fut.result(), shares, self.name_of)
                except UpstreamError as e:
                    logger.warning("Trend year %s skipped: %s", year, e)

        trends = [points[y] for y in sorted(points)]
        if len(trends) == len(years):
            self.cache.set(key, trends)
        return trends
