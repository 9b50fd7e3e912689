"""
WMO weather interpretation codes -> (description, icon).

Open-Meteo reports one WMO code per day. The icon names are the ones the
front-end icon set understands; anything unmapped falls back to "unknown".
"""

from __future__ import annotations

from typing import List, Tuple

# (first code, last code, description, icon), inclusive ranges
_CODE_RANGES: List[Tuple[int, int, str, str]] = [
    (0, 0, "Clear sky", "clear"),
    (1, 3, "Partly cloudy", "partly_cloudy"),
    (45, 45, "Fog", "fog"),
    (48, 48, "Fog", "fog"),
    (51, 55, "Drizzle", "drizzle"),
    (56, 57, "Freezing drizzle", "drizzle"),
    (61, 65, "Rain", "rain"),
    (66, 67, "Freezing rain", "rain"),
    (71, 77, "Snow", "snow"),
    (80, 82, "Rain showers", "showers"),
    (85, 86, "Snow showers", "snow"),
    (95, 99, "Thunderstorm", "thunderstorm"),
]

UNKNOWN = ("Unknown", "unknown")


def describe(code: int) -> Tuple[str, str]:
    """Return (description, icon) for a WMO weather code."""
    for low, high, description, icon in _CODE_RANGES:
        if low <= code <= high:
            return description, icon
    return UNKNOWN
