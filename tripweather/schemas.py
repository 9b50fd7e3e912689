"""
Pydantic schemas.

Why:
- One shape shared by the HTTP service, the clients and the lookup layer
- Frozen models: a cached result can be handed to many callers safely
- camelCase aliases keep the JSON contract, snake_case keeps the Python side readable
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_json_dict(self) -> dict:
        """JSON-ready dict using the wire (camelCase) names, without empty fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class GeocodeResult(_Frozen):
    """
    Outcome of resolving a free-text location.
    found=False is a real answer (place does not exist), not an error.
    """
    found: bool
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    display_name: Optional[str] = Field(None, alias="displayName")
    reason: Optional[str] = None

    @property
    def has_coordinates(self) -> bool:
        return self.found and self.latitude is not None and self.longitude is not None


class WeatherData(_Frozen):
    """
    Daily weather summary for one place and date.

    Unavailable responses usually carry only `available` and `reason`,
    so everything else is optional.
    """
    available: bool
    date: Optional[str] = None
    weather_code: Optional[int] = Field(None, alias="weatherCode")
    description: Optional[str] = None
    icon: Optional[str] = None
    temperature_max: Optional[float] = Field(None, alias="temperatureMax")
    temperature_min: Optional[float] = Field(None, alias="temperatureMin")
    reason: Optional[str] = None


class LookupRequest(_Frozen):
    """One keyed request for the batch orchestrator; `id` must be stable across re-issues."""
    id: str
    location: Optional[str] = None
    date: Optional[str] = None


class LookupState(_Frozen):
    """What a single lookup exposes to its caller."""
    weather: Optional[WeatherData] = None
    loading: bool = False
    error: Optional[str] = None

    @property
    def is_baseline(self) -> bool:
        return self.weather is None and not self.loading and self.error is None


class BatchResult(_Frozen):
    """One result slot of the batch orchestrator."""
    id: str
    weather: Optional[WeatherData] = None
    loading: bool = False


class ItineraryItem(_Frozen):
    """The only part of an itinerary item this package looks at."""
    area: Optional[str] = None
