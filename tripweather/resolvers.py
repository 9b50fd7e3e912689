"""
Memoizing resolvers for the two lookup stages.

- GeocodeResolver: location string -> GeocodeResult (negative results cached too)
- ForecastResolver: (lat, lon, date) -> WeatherData, only available=True cached

Neither resolver raises. Provider failures become a negative result here so
the orchestrators only ever see settled, typed values.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional, Protocol, TypeVar

import httpx

from .cache import Cache, forecast_cache, forecast_key, geocode_cache, geocode_key
from .schemas import GeocodeResult, WeatherData
from .settings import settings
from .weather_clients import TripWeatherClient, WeatherError

logger = logging.getLogger(__name__)

T = TypeVar("T")

NETWORK_ERROR = "Network error"

# Everything a client call may raise for an unreachable or misbehaving backend.
# ValueError covers JSONDecodeError and pydantic's ValidationError.
PROVIDER_ERRORS = (httpx.HTTPError, WeatherError, ValueError)


class LookupClient(Protocol):
    async def geocode(self, location: str) -> GeocodeResult:
        ...

    async def weather(self, lat: float, lon: float, date: str) -> WeatherData:
        ...


class SingleFlight:
    """
    Collapses concurrent calls for the same key into one underlying call.

    Later callers attach to the first caller's task through asyncio.shield,
    so one caller being cancelled does not cancel the shared call.
    """

    def __init__(self) -> None:
        self._inflight: Dict[str, "asyncio.Task"] = {}

    async def do(self, key: str, fn: Callable[[], Awaitable[T]]) -> T:
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(fn())
            self._inflight[key] = task
            task.add_done_callback(lambda _t, key=key: self._forget(key, _t))
        else:
            logger.debug("Joining in-flight lookup for %s", key)
        return await asyncio.shield(task)

    def _forget(self, key: str, task: "asyncio.Task") -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    def clear(self) -> None:
        self._inflight.clear()

    def __len__(self) -> int:
        return len(self._inflight)


# In-flight maps shared by every resolver writing to the process-wide caches.
geocode_flight = SingleFlight()
forecast_flight = SingleFlight()


def _pick_flight(shared: SingleFlight, cache_injected: bool, single_flight: Optional[bool]) -> Optional[SingleFlight]:
    use_single_flight = settings.single_flight if single_flight is None else single_flight
    if not use_single_flight:
        return None
    # Joiners must read back from the same cache the leader fills.
    return SingleFlight() if cache_injected else shared


class GeocodeResolver:
    """Free-text location -> coordinates, memoized under the lower-cased location."""

    def __init__(
        self,
        client: Optional[LookupClient] = None,
        cache: Optional[Cache[str, GeocodeResult]] = None,
        single_flight: Optional[bool] = None,
    ):
        self.client = client or TripWeatherClient()
        self.cache = cache if cache is not None else geocode_cache
        self._flight = _pick_flight(geocode_flight, cache is not None, single_flight)

    async def resolve(self, location: str) -> GeocodeResult:
        key = geocode_key(location)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Geocode cache hit for %r", key)
            return cached

        if self._flight is None:
            return await self._fetch(location, key)
        return await self._flight.do(key, lambda: self._fetch(location, key))

    async def _fetch(self, location: str, key: str) -> GeocodeResult:
        try:
            result = await self.client.geocode(location)
        except PROVIDER_ERRORS as exc:
            logger.warning("Geocode lookup for %r failed: %s", location, exc)
            return GeocodeResult(found=False, reason=NETWORK_ERROR)

        self.cache.put(key, result)
        return result


class ForecastResolver:
    """(lat, lon, date) -> WeatherData, memoized on 4-decimal coordinates."""

    def __init__(
        self,
        client: Optional[LookupClient] = None,
        cache: Optional[Cache[str, WeatherData]] = None,
        single_flight: Optional[bool] = None,
    ):
        self.client = client or TripWeatherClient()
        self.cache = cache if cache is not None else forecast_cache
        self._flight = _pick_flight(forecast_flight, cache is not None, single_flight)

    async def resolve(self, lat: float, lon: float, date: str) -> Optional[WeatherData]:
        key = forecast_key(lat, lon, date)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Forecast cache hit for %s", key)
            return cached

        if self._flight is None:
            return await self._fetch(lat, lon, date, key)
        return await self._flight.do(key, lambda: self._fetch(lat, lon, date, key))

    async def _fetch(self, lat: float, lon: float, date: str, key: str) -> Optional[WeatherData]:
        try:
            data = await self.client.weather(lat, lon, date)
        except PROVIDER_ERRORS as exc:
            logger.warning("Forecast lookup for %s failed: %s", key, exc)
            return None

        # Unavailable is transient: the date may enter the provider's horizon later.
        if data.available:
            self.cache.put(key, data)
        return data
