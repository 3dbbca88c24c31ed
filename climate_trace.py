"""
Thin HTTP client for the Climate TRACE v6 API.
API docs: https://api.climatetrace.org/v6/swagger/index.html
"""
import logging
import math
from typing import Any, Dict, Iterable, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from errors import UpstreamError
from settings import Settings

logger = logging.getLogger(__name__)


def make_session(max_retries: int = 2, backoff_factor: float = 0.5) -> requests.Session:
    session = requests.Session()
    session.headers.update({"User-Agent": "EmissionLens/1.0 (emissions dashboard)"})
    retries = Retry(
        total=max_retries,
        status_forcelist=[429, 500, 502, 503, 504],
        backoff_factor=backoff_factor,
        respect_retry_after_header=True,
        raise_on_status=False,
    )
    session.mount("https://", HTTPAdapter(max_retries=retries))
    return session


def join_codes(codes: Optional[Iterable[str]]) -> Optional[str]:
    """Normalize a country list (CSV string or iterable) to 'AAA,BBB' or None."""
    if not codes:
        return None
    if isinstance(codes, str):
        parts = codes.split(",")
    else:
        parts = list(codes)
    parts = [p.strip().upper() for p in parts if p and p.strip()]
    return ",".join(parts) or None


# ---------------------------------------------------------
# Payload shape helpers (2xx bodies are not trusted)
# ---------------------------------------------------------
def as_rows(data) -> List[dict]:
    """A response body as a list of dict rows; anything else is dropped."""
    if isinstance(data, dict):
        return [data]
    if not isinstance(data, list):
        return []
    return [d for d in data if isinstance(d, dict)]


def as_mapping(value) -> dict:
    return value if isinstance(value, dict) else {}


def as_number(value) -> float:
    """Finite float from an upstream field, 0 for null, bools, junk, NaN."""
    if isinstance(value, bool):
        return 0.0
    try:
        x = float(value)
    except (TypeError, ValueError):
        return 0.0
    return x if math.isfinite(x) else 0.0


class ClimateTraceClient:
    def __init__(self, settings: Optional[Settings] = None, session: Optional[requests.Session] = None):
        self.settings = settings or Settings()
        self.base_url = self.settings.base_url.rstrip("/")
        self.session = session or make_session(self.settings.max_retries)

    def _get_json(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}/{endpoint.lstrip('/')}"
        logger.debug("GET %s params=%s", url, params)
        try:
            r = self.session.get(url, params=params, timeout=self.settings.timeout)
        except requests.RequestException as e:
            raise UpstreamError(f"Request to {endpoint} failed: {e}", url=url) from e
        if not 200 <= r.status_code < 300:
            raise UpstreamError(f"Climate TRACE returned an error for {endpoint}", url=url, status=r.status_code)
        try:
            return r.json()
        except ValueError as e:
            raise UpstreamError(f"Invalid JSON from {endpoint}", url=url, status=r.status_code) from e

    # Definitions
    def countries(self) -> Any:
        return self._get_json("definitions/countries")

    def sectors(self) -> Any:
        return self._get_json("definitions/sectors")

    def continents(self) -> Any:
        return self._get_json("definitions/continents")

    # Emissions
    def country_emissions(self, since: int, to: int, countries: Optional[Iterable[str]] = None) -> Any:
        params: Dict[str, Any] = {"since": since, "to": to}
        codes = join_codes(countries)
        if codes:
            params["countries"] = codes
        return self._get_json("country/emissions", params)

    def asset_emissions(self, since: int, to: int, countries: Optional[Iterable[str]] = None) -> Any:
        params: Dict[str, Any] = {"since": since, "to": to}
        codes = join_codes(countries)
        if codes:
            params["countries"] = codes
        return self._get_json("assets/emissions", params)
