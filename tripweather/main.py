"""
FastAPI entrypoint.

Serves the two endpoints the lookup layer calls:
- GET /geocode?q=...                  -> GeocodeResult JSON
- GET /weather?lat=...&lon=...&date=  -> WeatherData JSON

Provider trouble never turns into a 5xx: the endpoints answer with
found=False / available=False and a reason, and only malformed requests get 400.
"""

from __future__ import annotations

import logging
import math
from datetime import date
from typing import Callable, Optional

import httpx
from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse

from .settings import settings
from .weather_clients import NominatimClient, OpenMeteoClient, WeatherError
from .window import FETCH_WINDOW, ForecastWindow, parse_iso_date

logger = logging.getLogger(__name__)


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _parse_float(value: str) -> Optional[float]:
    try:
        number = float(value)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def create_app(
    geocoder: Optional[NominatimClient] = None,
    forecaster: Optional[OpenMeteoClient] = None,
    window: ForecastWindow = FETCH_WINDOW,
    clock: Callable[[], date] = date.today,
) -> FastAPI:
    app = FastAPI(title=settings.app_name)

    # API clients (constructed once per app).
    app.state.geocoder = geocoder or NominatimClient()
    app.state.forecaster = forecaster or OpenMeteoClient()

    @app.get("/geocode")
    async def geocode(request: Request, q: Optional[str] = None):
        """Location name -> coordinates (top Nominatim match)."""
        if not q:
            return _bad_request("q parameter is required")

        try:
            result = await request.app.state.geocoder.geocode(q)
        except WeatherError as e:
            logger.warning("Geocoding service error for %r: %s", q, e)
            return {"found": False, "reason": "Geocoding service error"}
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning("Geocode request for %r failed: %s", q, e)
            return {"found": False, "reason": "Failed to geocode location"}

        return result.to_json_dict()

    @app.get("/weather")
    async def weather(
        request: Request,
        lat: Optional[str] = None,
        lon: Optional[str] = None,
        day_str: Optional[str] = Query(None, alias="date"),
    ):
        """
        Daily weather for one date:
        - past dates come from the archive host
        - dates outside the fetch window are reported unavailable without an upstream call
        """
        if not lat or not lon or not day_str:
            return _bad_request("lat, lon, date parameters are required")

        latitude = _parse_float(lat)
        longitude = _parse_float(lon)
        if latitude is None or longitude is None:
            return _bad_request("Invalid latitude or longitude")

        day = parse_iso_date(day_str)
        if day is None:
            return _bad_request("Invalid date format. Use YYYY-MM-DD")

        offset = (day - clock()).days
        if not window.min_days <= offset <= window.max_days:
            return {
                "available": False,
                "reason": (
                    f"Date is outside the available forecast range "
                    f"(past {-window.min_days} days to future {window.max_days} days)"
                ),
            }

        try:
            data = await request.app.state.forecaster.daily_weather(
                latitude, longitude, day, past=offset < 0
            )
        except WeatherError as e:
            logger.warning("Open-Meteo error for %s,%s %s: %s", latitude, longitude, day, e)
            return {"available": False, "reason": "Weather data not available"}
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning("Weather request for %s,%s %s failed: %s", latitude, longitude, day, e)
            return {"available": False, "reason": "Failed to fetch weather data"}

        return data.to_json_dict()

    return app


def main() -> None:
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(create_app(), host="127.0.0.1", port=8000)


if __name__ == "__main__":
    main()
