"""
Country / sector / continent reference data from Climate TRACE.
"""
import logging
import threading
from typing import Dict, List

from cache import TTLCache
from climate_trace import ClimateTraceClient, as_rows
from errors import UpstreamError

logger = logging.getLogger(__name__)


class Registry:
    """Reference data with a last-known-good fallback.

    Definitions are cached for the cache window. When a refresh fails the
    previous good value is returned (empty list if there never was one) and
    nothing is raised.
    """

    def __init__(self, client: ClimateTraceClient, cache: TTLCache):
        self.client = client
        self.cache = cache
        self._last_good: Dict[str, List[dict]] = {}
        self._names: Dict[str, str] = {}
        self._names_loaded = False
        self._names_lock = threading.Lock()

    def _definitions(self, kind: str, fetch) -> List[dict]:
        key = ("definitions", kind)
        hit = self.cache.get(key)
        if hit is not None:
            return hit
        try:
            logger.info("Fetching %s definitions from Climate TRACE", kind)
            data = fetch()
        except UpstreamError as e:
            logger.warning("Failed to fetch %s definitions: %s", kind, e)
            return list(self._last_good.get(kind, []))
        if not isinstance(data, list):
            logger.warning("Unexpected %s definitions payload: %s", kind, type(data).__name__)
            return list(self._last_good.get(kind, []))
        data = as_rows(data)
        self.cache.set(key, data)
        self._last_good[kind] = data
        logger.info("Loaded %d %s", len(data), kind)
        return data

    def get_country_definitions(self) -> List[dict]:
        return self._definitions("countries", self.client.countries)

    def get_sector_definitions(self) -> List[dict]:
        return self._definitions("sectors", self.client.sectors)

    def get_continent_definitions(self) -> List[dict]:
        return self._definitions("continents", self.client.continents)

    def initialize_country_names(self) -> None:
        """Populate the code -> name lookup. Safe to call repeatedly.

        Only the first call goes to the network. If that attempt fails the
        lookup stays empty and names fall back to their ISO3 codes.
        """
        if self._names_loaded:
            return
        with self._names_lock:
            if self._names_loaded:
                return
            logger.info("Loading country names from Climate TRACE")
            countries = self.get_country_definitions()
            for c in countries:
                if isinstance(c.get("alpha3"), str) and isinstance(c.get("name"), str) and c["name"]:
                    self._names[c["alpha3"]] = c["name"]
            self._names_loaded = True
            if self._names:
                logger.info("Loaded %d country names", len(self._names))
            else:
                logger.warning("Country names unavailable; falling back to ISO codes")

    @property
    def names_loaded(self) -> bool:
        return self._names_loaded

    def country_name(self, code: str) -> str:
        return self._names.get(code) or code

    def country_codes(self) -> List[str]:
        return [c["alpha3"] for c in self.get_country_definitions()
                if isinstance(c.get("alpha3"), str) and len(c["alpha3"]) == 3]

    def continent_map(self) -> Dict[str, str]:
        return {c["alpha3"]: c["continent"] for c in self.get_country_definitions()
                if isinstance(c.get("alpha3"), str) and isinstance(c.get("continent"), str) and c["continent"]}
