"""Helpers for callers that enrich itinerary days with weather."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from typing import Any, Iterable, Optional

from .window import DISPLAY_WINDOW, ForecastWindow


def _area(item: Any) -> Optional[str]:
    if isinstance(item, Mapping):
        return item.get("area")
    return getattr(item, "area", None)


def first_location_for_day(items: Iterable[Any]) -> Optional[str]:
    """First non-empty `area` in list order, or None."""
    for item in items:
        area = _area(item)
        if area:
            return area
    return None


def day_weather_location(
    day: str,
    items: Iterable[Any],
    today: Optional[date] = None,
    window: ForecastWindow = DISPLAY_WINDOW,
) -> Optional[str]:
    """
    Location to look up for a day's weather badge, or None when the day
    should not show one (no location, or date outside the display window).
    """
    if not window.contains(day, today):
        return None
    return first_location_for_day(items)
