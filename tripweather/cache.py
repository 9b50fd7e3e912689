"""
Process-wide lookup caches.

Two caches live for the life of the process and are shared by every lookup:
- geocode_cache:  lower-cased location -> GeocodeResult
- forecast_cache: "lat,lon,date" (4-decimal rounding) -> WeatherData

Unbounded by default; set TRIPWEATHER_CACHE_MAX_ENTRIES to make both LRUs.
Writes always replace an entry, cached models are frozen and never mutated.
"""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Generic, Optional, Protocol, TypeVar

from .schemas import GeocodeResult, WeatherData
from .settings import settings

K = TypeVar("K")
V = TypeVar("V")


class Cache(Protocol[K, V]):
    """Minimal capability the resolvers need from a cache."""

    def get(self, key: K) -> Optional[V]:
        ...

    def put(self, key: K, value: V) -> None:
        ...


class DictCache(Generic[K, V]):
    """Plain mapping, no eviction."""

    def __init__(self) -> None:
        self._data: Dict[K, V] = {}

    def get(self, key: K) -> Optional[V]:
        return self._data.get(key)

    def put(self, key: K, value: V) -> None:
        self._data[key] = value

    def clear(self) -> None:
        self._data.clear()

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data


class LRUCache(DictCache[K, V]):
    """Bounded cache that drops the least recently used key once full."""

    def __init__(self, max_entries: int) -> None:
        if max_entries < 1:
            raise ValueError("max_entries must be >= 1")
        self.max_entries = max_entries
        self._data: "OrderedDict[K, V]" = OrderedDict()

    def get(self, key: K) -> Optional[V]:
        if key not in self._data:
            return None
        self._data.move_to_end(key)
        return self._data[key]

    def put(self, key: K, value: V) -> None:
        self._data[key] = value
        self._data.move_to_end(key)
        while len(self._data) > self.max_entries:
            self._data.popitem(last=False)


def make_cache(max_entries: Optional[int] = None) -> DictCache:
    """LRU when a bound is given, plain dict otherwise."""
    if max_entries is None:
        return DictCache()
    return LRUCache(max_entries)


def geocode_key(location: str) -> str:
    """Case-folded verbatim, no trimming."""
    return location.lower()


def forecast_key(lat: float, lon: float, date: str) -> str:
    """~11 m precision so repeated geocodes of one place share an entry."""
    return f"{lat:.4f},{lon:.4f},{date}"


geocode_cache: DictCache[str, GeocodeResult] = make_cache(settings.cache_max_entries)
forecast_cache: DictCache[str, WeatherData] = make_cache(settings.cache_max_entries)


def clear_caches() -> None:
    geocode_cache.clear()
    forecast_cache.clear()
