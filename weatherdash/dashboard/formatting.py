from datetime import datetime
from typing import Optional

from weatherdash.models import Units, browser_round

ICON_BASE_URL = "https://openweathermap.org/img/wn"

_COMPASS = (
    "N", "NNE", "NE", "ENE",
    "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW",
    "W", "WNW", "NW", "NNW",
)


def convert_temperature(temp: Optional[float], to_unit: Units, from_unit: Units = "metric") -> Optional[float]:
    if temp is None or to_unit == from_unit:
        return temp
    if to_unit == "imperial":
        return temp * 9 / 5 + 32
    return (temp - 32) * 5 / 9


def format_temperature(temp: Optional[float], unit: Units = "metric") -> str:
    """Format a metric temperature for display in ``unit``."""
    if temp is None:
        return "N/A"
    symbol = "°C" if unit == "metric" else "°F"
    return f"{browser_round(convert_temperature(temp, unit))}{symbol}"


def format_wind_speed(speed: Optional[float], unit: Units = "metric") -> str:
    if speed is None:
        return "N/A"
    if unit == "imperial":
        return f"{speed * 2.236936:.1f} mph"
    return f"{speed:.1f} m/s"


def wind_direction(degrees: Optional[float]) -> str:
    if degrees is None:
        return "N/A"
    return _COMPASS[browser_round((degrees % 360) / 22.5) % 16]


def weather_icon_url(icon: Optional[str], size: str = "2x") -> str:
    if not icon:
        return ""
    return f"{ICON_BASE_URL}/{icon}@{size}.png"


def format_last_updated(timestamp: Optional[str]) -> str:
    if not timestamp:
        return "Unknown"
    return datetime.fromisoformat(timestamp).strftime("%Y-%m-%d %H:%M:%S")
