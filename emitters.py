"""
Top-emitter resolver: ranks every country by CO2 for a year window.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import List

from cache import TTLCache
from climate_trace import ClimateTraceClient, as_mapping, as_number, as_rows
from errors import UpstreamError
from registry import Registry
from tables import FALLBACK_EMITTERS

logger = logging.getLogger(__name__)


def is_country_code(code) -> bool:
    return isinstance(code, str) and len(code) == 3 and code != "all"


def _co2(record: dict) -> float:
    return as_number(as_mapping(record.get("emissions")).get("co2"))


class TopEmitterResolver:
    def __init__(self, client: ClimateTraceClient, registry: Registry, cache: TTLCache,
                 batch_size: int = 50, max_workers: int = 8):
        self.client = client
        self.registry = registry
        self.cache = cache
        self.batch_size = batch_size
        self.max_workers = max_workers

    def _fetch_batch(self, since: int, to: int, batch: List[str]) -> List[dict]:
        data = self.client.country_emissions(since, to, batch)
        return [d for d in as_rows(data) if is_country_code(d.get("country"))]

    def _rank(self, since: int, to: int, codes: List[str]) -> List[dict]:
        batches = [codes[i:i + self.batch_size] for i in range(0, len(codes), self.batch_size)]
        records: List[dict] = []
        with ThreadPoolExecutor(max_workers=max(1, min(self.max_workers, len(batches)))) as ex:
            futs = {ex.submit(self._fetch_batch, since, to, b): n for n, b in enumerate(batches, 1)}
            for fut in as_completed(futs):
                try:
                    records.extend(fut.result())
                except UpstreamError as e:
                    logger.warning("Batch %d of %d failed: %s", futs[fut], len(batches), e)
        # stable on ties regardless of completion order
        records.sort(key=lambda d: d["country"])
        records.sort(key=_co2, reverse=True)
        return records

    def resolve_top_emitters(self, since: int, to: int, limit: int = 40) -> List[str]:
        """Country codes ordered by CO2 over ``since``-``to``, at most ``limit``.

        Never empty for ``limit > 0``: with no registry data or no successful
        batch the fixed fallback list is returned instead.
        """
        key = ("topEmitters", since, to, limit)
        hit = self.cache.get(key)
        if hit is not None:
            return hit

        logger.info("Fetching top %d emitting countries (%s-%s)", limit, since, to)
        codes = self.registry.country_codes()
        if not codes:
            logger.warning("No country definitions available; using fallback emitter list")
            return list(FALLBACK_EMITTERS[:limit])

        records = self._rank(since, to, codes)
        if not records:
            logger.warning("No emissions data received; using fallback emitter list")
            return list(FALLBACK_EMITTERS[:limit])

        top = [d["country"] for d in records[:limit]]
        self.cache.set(key, top)
        logger.info("Found top %d emitters: %s", len(top), ", ".join(top[:5]))
        return top
