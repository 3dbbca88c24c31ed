"""
Time-windowed in-memory cache shared by the registry, resolver, fetcher and
aggregators. One instance per process, injected where it is needed.
"""
import logging
import threading
import time
from typing import Any, Callable, Dict, Hashable, Optional, Tuple

logger = logging.getLogger(__name__)


class TTLCache:
    """Map of composite query key -> (value, fetched_at).

    An entry is valid only while ``now - fetched_at < ttl_sec``; an expired
    entry reads as absent. Expired entries are swept on write, at most once
    per window, so keys that are never read again do not pile up.
    ``clock`` is injectable so tests can move time.
    """

    def __init__(self, ttl_sec: float, clock: Optional[Callable[[], float]] = None):
        self.ttl_sec = ttl_sec
        self._clock = clock or time.time
        self._entries: Dict[Hashable, Tuple[Any, float]] = {}
        self._lock = threading.Lock()
        self._last_sweep = self._clock()

    def get(self, key: Hashable, default: Any = None) -> Any:
        now = self._clock()
        with self._lock:
            hit = self._entries.get(key)
            if hit is None:
                return default
            val, ts = hit
            if now - ts < self.ttl_sec:
                return val
            del self._entries[key]
        return default

    def set(self, key: Hashable, value: Any) -> None:
        now = self._clock()
        with self._lock:
            if now - self._last_sweep >= self.ttl_sec:
                self._sweep(now)
            self._entries[key] = (value, now)

    def _sweep(self, now: float) -> None:
        # caller holds the lock
        stale = [k for k, (_, ts) in self._entries.items() if now - ts >= self.ttl_sec]
        for k in stale:
            del self._entries[k]
        self._last_sweep = now
        if stale:
            logger.debug("cache swept %d expired entries", len(stale))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
