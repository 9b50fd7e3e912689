from typing import Optional, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized configuration.

    Why:
    - Provider URLs and timeouts stay out of source code
    - The two forecast windows live in one place instead of duplicated literals
    - Tests and deployments can override anything with TRIPWEATHER_* env vars

    Loaded from:
    - environment variables (prefix TRIPWEATHER_)
    - .env file (if present)
    """
    model_config = SettingsConfigDict(env_file=".env", env_prefix="TRIPWEATHER_", extra="ignore")

    app_name: str = "Trip Weather"

    # Where the lookup layer sends /geocode and /weather requests
    api_base_url: str = "http://127.0.0.1:8000"
    http_timeout_s: float = 10.0

    # Day offsets from today, inclusive on both ends
    fetch_window: Tuple[int, int] = (-7, 16)
    display_window: Tuple[int, int] = (-1, 14)

    # None keeps the caches unbounded for the life of the process
    cache_max_entries: Optional[int] = None
    single_flight: bool = True

    # Upstream providers used by the /geocode and /weather service
    nominatim_url: str = "https://nominatim.openstreetmap.org/search"
    geocode_language: str = "en"
    user_agent: str = "TripWeather/1.0"
    forecast_url: str = "https://api.open-meteo.com/v1/forecast"
    archive_url: str = "https://archive-api.open-meteo.com/v1/archive"
    forecast_timezone: str = "auto"


settings = Settings()
