import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from weatherdash.models.weather import TemperatureUnit, WeatherData

logger = logging.getLogger(__name__)


def make_cache_key(lat: float, lon: float, unit: TemperatureUnit | str) -> str:
    """Build the cache key; coordinates within ~0.01 degrees share one entry"""
    unit_value = unit.value if isinstance(unit, TemperatureUnit) else unit
    return f"{lat:.2f},{lon:.2f},{unit_value}"


@dataclass
class CacheEntry:
    data: WeatherData
    timestamp: float


class ResponseCache:
    """
    In-memory weather response cache with TTL expiry and a size bound.

    Expired entries are dropped lazily when read. When the cache is full the
    oldest-inserted entries are evicted in one batch before the new entry is
    stored, which approximates LRU without tracking reads.
    """

    def __init__(
        self,
        ttl_seconds: float = 300,
        max_size: int = 1000,
        evict_batch: int = 100,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self.evict_batch = evict_batch
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.ttl_seconds

    def get_entry(self, key: str) -> CacheEntry | None:
        """Return the live entry for key, evicting it if it has expired"""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._is_expired(entry, now):
                del self._entries[key]
                return None
            return entry

    def get(self, key: str) -> WeatherData | None:
        entry = self.get_entry(key)
        return entry.data if entry else None

    def age_seconds(self, entry: CacheEntry) -> int:
        return int(self._clock() - entry.timestamp)

    def set(self, key: str, data: WeatherData) -> None:
        with self._lock:
            if len(self._entries) >= self.max_size:
                for old_key in list(self._entries)[: self.evict_batch]:
                    del self._entries[old_key]
                logger.info(
                    f"Cache full, evicted {self.evict_batch} oldest entries"
                )
            # Re-inserting moves a refreshed key to the back of the order
            self._entries.pop(key, None)
            self._entries[key] = CacheEntry(data=data, timestamp=self._clock())

    def clear(self) -> int:
        """Drop every entry, returning how many were removed"""
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        logger.info(f"Cache cleared, {count} entries removed")
        return count

    def purge_expired(self) -> int:
        """Proactively remove expired entries"""
        now = self._clock()
        with self._lock:
            expired = [
                key
                for key, entry in self._entries.items()
                if self._is_expired(entry, now)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def stats(self) -> dict[str, Any]:
        return {
            "size": len(self._entries),
            "max_size": self.max_size,
            "ttl_ms": int(self.ttl_seconds * 1000),
        }
