"""
Weather clients.

We intentionally separate HTTP logic from the lookup layer and the FastAPI endpoints:
- easier to test in isolation (every client accepts an httpx transport)
- resolvers only deal with parsed models, never with raw responses
- the same upstream clients back the /geocode and /weather service

Two directions:
- TripWeatherClient talks to our own /geocode and /weather boundary
- NominatimClient / OpenMeteoClient talk to the public providers behind it
"""

from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional

import httpx

from .schemas import GeocodeResult, WeatherData
from .settings import settings
from .weather_codes import describe


class WeatherError(RuntimeError):
    """Raised when a weather or geocoding endpoint answers with a non-200 status."""
    pass


class TripWeatherClient:
    """
    Client for the trip backend's lookup endpoints.

    Endpoints used:
    - GET {base}/geocode?q=...
    - GET {base}/weather?lat=...&lon=...&date=YYYY-MM-DD

    Both return JSON already in GeocodeResult / WeatherData shape, so this
    client only validates and returns models.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base = (base_url or settings.api_base_url).rstrip("/")
        self.timeout_s = timeout_s if timeout_s is not None else settings.http_timeout_s
        self.transport = transport

    async def geocode(self, location: str) -> GeocodeResult:
        """Resolve a location string. Raises on transport, status or parse failure."""
        data = await self._get_json("/geocode", {"q": location})
        return GeocodeResult.model_validate(data)

    async def weather(self, lat: float, lon: float, day: str) -> WeatherData:
        """Daily weather for coordinates and an ISO date. Raises like geocode()."""
        data = await self._get_json("/weather", {"lat": lat, "lon": lon, "date": day})
        return WeatherData.model_validate(data)

    async def _get_json(self, path: str, params: Dict[str, Any]) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
            r = await client.get(f"{self.base}{path}", params=params)

        if r.status_code != 200:
            raise WeatherError(f"{path} failed ({r.status_code}): {r.text}")
        return r.json()


class NominatimClient:
    """
    OpenStreetMap Nominatim geocoder.

    Endpoint used:
        /search?q=...&format=json&limit=1&accept-language=xx

    Nominatim's usage policy requires an identifying User-Agent.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        language: Optional[str] = None,
        user_agent: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.nominatim_url
        self.language = language or settings.geocode_language
        self.user_agent = user_agent or settings.user_agent
        self.timeout_s = timeout_s if timeout_s is not None else settings.http_timeout_s
        self.transport = transport

    async def geocode(self, query: str) -> GeocodeResult:
        """
        Resolve a place name to the top match.
        An empty match list is a normal found=False answer; a non-200 raises WeatherError.
        """
        params = {"q": query, "format": "json", "limit": 1, "accept-language": self.language}
        headers = {"User-Agent": self.user_agent}
        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
            r = await client.get(self.url, params=params, headers=headers)

        if r.status_code != 200:
            raise WeatherError(f"Geocoding failed ({r.status_code})")

        results = r.json() or []
        if not results:
            return GeocodeResult(found=False, reason="Location not found")

        best = results[0]
        return GeocodeResult(
            found=True,
            latitude=float(best["lat"]),
            longitude=float(best["lon"]),
            display_name=best.get("display_name"),
        )


class OpenMeteoClient:
    """
    Open-Meteo daily weather.

    Why Open-Meteo?
    - No API key required
    - One daily WMO code plus min/max temperature per date
    - Same request shape for the forecast and the archive host

    Past dates are served from the archive host, today and later from the forecast host.
    """

    DAILY_FIELDS = ["weather_code", "temperature_2m_max", "temperature_2m_min"]

    def __init__(
        self,
        forecast_url: Optional[str] = None,
        archive_url: Optional[str] = None,
        timezone: Optional[str] = None,
        timeout_s: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.forecast_url = forecast_url or settings.forecast_url
        self.archive_url = archive_url or settings.archive_url
        self.timezone = timezone or settings.forecast_timezone
        self.timeout_s = timeout_s if timeout_s is not None else settings.http_timeout_s
        self.transport = transport

    async def daily_weather(self, lat: float, lon: float, day: date, past: bool = False) -> WeatherData:
        """
        Fetch one day's summary.
        Returns available=False when the provider has no code for that date.
        """
        params = {
            "latitude": lat,
            "longitude": lon,
            "daily": ",".join(self.DAILY_FIELDS),
            "timezone": self.timezone,
            "start_date": day.isoformat(),
            "end_date": day.isoformat(),
        }
        url = self.archive_url if past else self.forecast_url

        async with httpx.AsyncClient(timeout=self.timeout_s, transport=self.transport) as client:
            r = await client.get(url, params=params)

        if r.status_code != 200:
            raise WeatherError(f"Open-Meteo daily weather failed ({r.status_code}): {r.text}")

        daily = (r.json() or {}).get("daily") or {}
        codes = daily.get("weather_code") or []
        if not codes or codes[0] is None:
            return WeatherData(available=False, reason="No weather data for this date")

        code = int(codes[0])
        description, icon = describe(code)
        return WeatherData(
            available=True,
            date=day.isoformat(),
            weather_code=code,
            description=description,
            icon=icon,
            temperature_max=_first(daily.get("temperature_2m_max")),
            temperature_min=_first(daily.get("temperature_2m_min")),
        )


def _first(series) -> Optional[float]:
    if not series or series[0] is None:
        return None
    return float(series[0])
