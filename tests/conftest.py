from __future__ import annotations

import asyncio
from datetime import date, timedelta
from typing import Dict, List, Optional, Tuple, Union

import pytest

from tripweather.cache import clear_caches
from tripweather.resolvers import forecast_flight, geocode_flight
from tripweather.schemas import GeocodeResult, WeatherData

TODAY = date(2026, 5, 1)


def iso(offset: int) -> str:
    return (TODAY + timedelta(days=offset)).isoformat()


def clock() -> date:
    return TODAY


KYOTO = GeocodeResult(found=True, latitude=35.0116, longitude=135.7681, display_name="Kyoto, Japan")
TOKYO = GeocodeResult(found=True, latitude=35.68123, longitude=139.76709, display_name="Tokyo, Japan")


def sunny(day: str) -> WeatherData:
    return WeatherData(
        available=True,
        date=day,
        weather_code=0,
        description="Clear sky",
        icon="clear",
        temperature_max=24.5,
        temperature_min=13.1,
    )


def rainy(day: str) -> WeatherData:
    return WeatherData(
        available=True,
        date=day,
        weather_code=63,
        description="Rain",
        icon="rain",
        temperature_max=18.0,
        temperature_min=12.0,
    )


class FakeLookupClient:
    """
    Stands in for TripWeatherClient.

    `gate(name)` returns an asyncio.Event that holds calls whose location
    (geocode) or date (weather) equals `name` until the test sets it.
    Create gates inside the running loop.
    """

    def __init__(
        self,
        places: Optional[Dict[str, GeocodeResult]] = None,
        forecasts: Optional[Dict[str, Union[WeatherData, Exception]]] = None,
    ) -> None:
        self.places = places if places is not None else {"kyoto": KYOTO, "tokyo": TOKYO}
        self.forecasts = forecasts if forecasts is not None else {}
        self.geocode_error: Optional[Exception] = None
        self.geocode_calls: List[str] = []
        self.weather_calls: List[Tuple[float, float, str]] = []
        self._gates: Dict[str, asyncio.Event] = {}

    def gate(self, name: str) -> asyncio.Event:
        event = asyncio.Event()
        self._gates[name] = event
        return event

    async def geocode(self, location: str) -> GeocodeResult:
        self.geocode_calls.append(location)
        gate = self._gates.get(location)
        if gate is not None:
            await gate.wait()
        if self.geocode_error is not None:
            raise self.geocode_error
        return self.places.get(location.lower(), GeocodeResult(found=False, reason="Location not found"))

    async def weather(self, lat: float, lon: float, date: str) -> WeatherData:
        self.weather_calls.append((lat, lon, date))
        gate = self._gates.get(date)
        if gate is not None:
            await gate.wait()
        data = self.forecasts.get(date)
        if isinstance(data, Exception):
            raise data
        if data is None:
            return sunny(date)
        return data


async def settle() -> None:
    """Let every ready callback on the loop run."""
    for _ in range(10):
        await asyncio.sleep(0)


@pytest.fixture(autouse=True)
def _clean_caches():
    def reset():
        clear_caches()
        geocode_flight.clear()
        forecast_flight.clear()

    reset()
    yield
    reset()


@pytest.fixture()
def client() -> FakeLookupClient:
    return FakeLookupClient()
