import asyncio
import logging
import time
from typing import Callable, Dict, List, Optional, Tuple

from weatherdash.models import CacheEntry, Location, OWCurrent, browser_round
from weatherdash.services.openweather import OpenWeatherClient

logger = logging.getLogger(__name__)


def now_ms() -> int:
    return int(time.time() * 1000)


async def _fetch_one(
    ow: OpenWeatherClient, location: Location, clock: Callable[[], int]
) -> Tuple[str, Optional[CacheEntry]]:
    try:
        data = OWCurrent.model_validate(await ow.get_current(lat=location.lat, lon=location.lon))
    except Exception as exc:
        logger.error("Error fetching weather for %s: %s", location.name, exc)
        return location.key, None

    entry = CacheEntry(temp=browser_round(data.main.temp), icon=data.weather[0].icon, timestamp=clock())
    return location.key, entry


async def fetch_saved_weather(
    ow: OpenWeatherClient,
    locations: List[Location],
    clock: Callable[[], int] = now_ms,
) -> Dict[str, CacheEntry]:
    """Current temp/icon for every location at once; failed locations are left out."""
    results = await asyncio.gather(*(_fetch_one(ow, loc, clock) for loc in locations))
    weather = {key: entry for key, entry in results if entry is not None}
    failed = sum(1 for _, entry in results if entry is None)
    if failed:
        logger.warning("Saved-location weather: %d of %d locations failed", failed, len(locations))
    return weather
