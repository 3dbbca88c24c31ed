"""
EmissionsService: the outward-facing emissions API used by the Flask routes
and the chat assistant. Builds one cache, one client and the components that
share them.
"""
import logging
from typing import Any, Callable, List, Mapping, Optional

import requests

from aggregators import RegionalAggregator, SectorAggregator, TrendAggregator
from cache import TTLCache
from climate_trace import ClimateTraceClient
from emissions import EmissionsFetcher
from emitters import TopEmitterResolver
from registry import Registry
from settings import Settings

logger = logging.getLogger(__name__)

DEFAULT_YEAR = 2023
DEFAULT_TREND_START = 2019
DEFAULT_TREND_END = 2023


def parse_int(value: Any, default: int) -> int:
    """Lenient int parsing: anything non-numeric (or zero) becomes ``default``."""
    if isinstance(value, bool):
        return default
    try:
        n = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return n or default


class EmissionsService:
    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None,
                 clock: Optional[Callable[[], float]] = None):
        self.settings = settings or Settings()
        self.cache = TTLCache(self.settings.cache_ttl_sec, clock=clock)
        self.client = ClimateTraceClient(self.settings, session=session)
        self.registry = Registry(self.client, self.cache)
        self.resolver = TopEmitterResolver(self.client, self.registry, self.cache,
                                           batch_size=self.settings.batch_size,
                                           max_workers=self.settings.max_workers)
        name_of = self.registry.country_name
        self.fetcher = EmissionsFetcher(self.client, self.resolver, self.cache, name_of)
        self.sectors = SectorAggregator(self.client, self.cache)
        self.regions = RegionalAggregator(self.fetcher, self.registry, self.cache)
        self.trends = TrendAggregator(self.client, self.sectors, self.resolver, self.cache, name_of,
                                      max_workers=self.settings.max_workers)

    @staticmethod
    def _window(options: Optional[Mapping]) -> tuple:
        options = options or {}
        return parse_int(options.get("since"), DEFAULT_YEAR), parse_int(options.get("to"), DEFAULT_YEAR)

    # Reference data
    def initialize_country_names(self) -> None:
        self.registry.initialize_country_names()

    def get_country_definitions(self) -> List[dict]:
        return self.registry.get_country_definitions()

    def get_sector_definitions(self) -> List[dict]:
        return self.registry.get_sector_definitions()

    def get_continent_definitions(self) -> List[dict]:
        return self.registry.get_continent_definitions()

    # Views
    def get_country_emissions(self, options: Optional[Mapping] = None) -> dict:
        options = options or {}
        since, to = self._window(options)
        self.initialize_country_names()
        return self.fetcher.fetch_country_emissions(
            since, to, options.get("countries"), parse_int(options.get("limit"), 50))

    def get_sector_emissions(self, options: Optional[Mapping] = None) -> dict:
        options = options or {}
        since, to = self._window(options)
        return self.sectors.fetch_sector_emissions(since, to, options.get("countries"))

    def get_regional_emissions(self, options: Optional[Mapping] = None) -> dict:
        since, to = self._window(options)
        self.initialize_country_names()
        return self.regions.fetch_regional_emissions(since, to)

    def get_emissions_trends(self, options: Optional[Mapping] = None) -> List[dict]:
        options = options or {}
        start = parse_int(options.get("startYear"), DEFAULT_TREND_START)
        end = parse_int(options.get("endYear"), DEFAULT_TREND_END)
        self.initialize_country_names()
        return self.trends.fetch_emissions_trends(start, end, options.get("countries"))

    def get_all_gases_emissions(self, options: Optional[Mapping] = None) -> dict:
        options = options or {}
        since, to = self._window(options)
        self.initialize_country_names()
        return self.fetcher.fetch_all_gases(since, to, parse_int(options.get("limit"), 30))
