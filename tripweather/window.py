"""
Forecast window policy.

Two windows, deliberately kept apart:
- FETCH_WINDOW   decides whether a lookup is dispatched at all
- DISPLAY_WINDOW is the narrower range in which a day shows a weather icon

Both are pure functions of a date string and "today" (local calendar day).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from .settings import settings

DATE_RE = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Strict YYYY-MM-DD -> date; None for anything else, including impossible dates."""
    if not isinstance(value, str) or not DATE_RE.fullmatch(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def day_offset(value: str, today: Optional[date] = None) -> Optional[int]:
    """Whole days from today to `value` (negative = past), or None if unparseable."""
    target = parse_iso_date(value)
    if target is None:
        return None
    return (target - (today or date.today())).days


@dataclass(frozen=True)
class ForecastWindow:
    """Inclusive range of day offsets relative to today."""

    min_days: int
    max_days: int

    def contains(self, value: Optional[str], today: Optional[date] = None) -> bool:
        offset = day_offset(value, today) if value else None
        if offset is None:
            return False
        return self.min_days <= offset <= self.max_days


FETCH_WINDOW = ForecastWindow(*settings.fetch_window)
DISPLAY_WINDOW = ForecastWindow(*settings.display_window)


def is_fetch_eligible(value: Optional[str], today: Optional[date] = None) -> bool:
    return FETCH_WINDOW.contains(value, today)


def is_display_eligible(value: Optional[str], today: Optional[date] = None) -> bool:
    return DISPLAY_WINDOW.contains(value, today)


def should_fetch_weather(
    location: Optional[str],
    value: Optional[str],
    today: Optional[date] = None,
    window: ForecastWindow = FETCH_WINDOW,
) -> bool:
    """A lookup needs both a location and a date inside the fetch window."""
    if not location or not value:
        return False
    return window.contains(value, today)
