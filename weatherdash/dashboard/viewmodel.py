import asyncio
import json
import logging
from enum import Enum
from typing import Awaitable, Callable, List, Optional, get_args

from pydantic import TypeAdapter, ValidationError

from weatherdash.dashboard.api import DashboardApi
from weatherdash.dashboard.formatting import format_temperature, format_wind_speed
from weatherdash.dashboard.saved_weather import SavedLocationWeatherCache
from weatherdash.dashboard.storage import SAVED_LOCATIONS_KEY, UNIT_KEY, Storage
from weatherdash.errors import ClientFetchError
from weatherdash.models import CacheEntry, CurrentWeather, DailyForecastEntry, Location, Units

logger = logging.getLogger(__name__)

GENERIC_ERROR = "Failed to fetch weather data. Please try again."
DEFAULT_LOCATION = Location(lat=40.7128, lon=-74.0060, name="New York")

_saved = TypeAdapter(List[Location])


class ViewState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


class WeatherViewModel:
    """
    Dashboard state: the selected location with its weather, forecast and
    photo, the saved-locations list and the unit preference.

    Every selection bumps a generation counter; a fetch that completes after a
    newer selection started is discarded. The city photo arrives after the
    weather is shown and never holds it back.
    """

    def __init__(
        self,
        api: DashboardApi,
        storage: Storage,
        saved_weather: Optional[SavedLocationWeatherCache] = None,
        locator: Optional[Callable[[], Awaitable[Location]]] = None,
        default_location: Location = DEFAULT_LOCATION,
    ):
        self.api = api
        self.storage = storage
        self.saved_weather = saved_weather
        self.locator = locator
        self.default_location = default_location

        self.state = ViewState.IDLE
        self.location: Optional[Location] = None
        self.current_weather: Optional[CurrentWeather] = None
        self.forecast: List[DailyForecastEntry] = []
        self.photo_url: Optional[str] = None
        self.error: Optional[str] = None
        self.last_updated: Optional[str] = None
        self.saved_locations: List[Location] = []
        self._unit: Units = "metric"
        self._generation = 0
        self._photo: Optional[asyncio.Task] = None

    @property
    def loading(self) -> bool:
        return self.state is ViewState.LOADING

    @property
    def unit(self) -> Units:
        return self._unit

    # ── Lifecycle ────────────────────────────────────────────────────────────

    async def start(self) -> None:
        """Restore persisted preferences, start the saved-weather refresh and load a first location."""
        self.saved_locations = self._load_saved_locations()
        self._unit = self._load_unit()

        if self.saved_weather is not None:
            self.saved_weather.load()
            self.saved_weather.start(lambda: self.saved_locations)

        location = self.default_location
        if self.locator is not None:
            try:
                location = await self.locator()
            except Exception as exc:
                logger.warning("Couldn't get current location, using %s: %s", location.name, exc)
        await self.select_location(location)

    async def close(self) -> None:
        if self._photo is not None:
            self._photo.cancel()
        if self.saved_weather is not None:
            await self.saved_weather.stop()

    # ── Selection ────────────────────────────────────────────────────────────

    async def select_location(self, location: Location) -> bool:
        self._generation += 1
        generation = self._generation

        self.state = ViewState.LOADING
        self.error = None
        self.location = location

        if self._photo is not None:
            self._photo.cancel()
            self._photo = None

        photo: Optional[asyncio.Task] = None
        try:
            weather = await self.api.fetch_weather(location)
            photo = asyncio.create_task(self.api.get_city_photo(weather.city or location.name))
            forecast = await self.api.fetch_forecast(location)
        except ClientFetchError as exc:
            if photo is not None:
                photo.cancel()
            if generation != self._generation:
                return False
            logger.error("Error fetching weather data for %s: %s", location.name, exc)
            self.error = GENERIC_ERROR
            self.state = ViewState.ERROR
            return False

        if generation != self._generation:
            photo.cancel()
            logger.debug("Discarding superseded result for %s", location.name)
            return False

        self.current_weather = weather
        self.forecast = forecast
        self.photo_url = None
        self.last_updated = weather.last_updated
        self.state = ViewState.READY

        self._photo = photo
        photo.add_done_callback(lambda task: self._photo_done(task, generation))
        return True

    def _photo_done(self, task: asyncio.Task, generation: int) -> None:
        if task.cancelled() or generation != self._generation:
            return
        exc = task.exception()
        if exc is not None:
            logger.warning("City photo lookup failed: %s", exc)
            return
        self.photo_url = task.result()

    async def wait_for_photo(self) -> Optional[str]:
        """Wait for the pending city photo lookup, if any, and return the current photo URL."""
        photo = self._photo
        if photo is None:
            return self.photo_url
        if not photo.done():
            await asyncio.wait([photo])
        if photo is self._photo:
            self._photo_done(photo, self._generation)
        return self.photo_url

    async def refresh(self) -> bool:
        if self.location is None:
            return False
        return await self.select_location(self.location)

    # ── Saved locations ──────────────────────────────────────────────────────

    def add_saved_location(self, location: Location) -> bool:
        if any(loc.name == location.name for loc in self.saved_locations):
            return False
        self.saved_locations = [*self.saved_locations, location]
        self._persist_saved_locations()
        if self.saved_weather is not None:
            self.saved_weather.request_refresh()
        return True

    def remove_saved_location(self, name: str) -> bool:
        remaining = [loc for loc in self.saved_locations if loc.name != name]
        if len(remaining) == len(self.saved_locations):
            return False
        self.saved_locations = remaining
        self._persist_saved_locations()
        if self.saved_weather is not None:
            self.saved_weather.prune(remaining)
        return True

    def saved_weather_for(self, location: Location) -> Optional[CacheEntry]:
        if self.saved_weather is None:
            return None
        return self.saved_weather.get(location)

    # ── Units ────────────────────────────────────────────────────────────────

    async def set_unit(self, unit: Units) -> None:
        if unit not in get_args(Units):
            raise ValueError(f"Unknown unit: {unit!r}")
        if unit == self._unit:
            return
        self._unit = unit
        self.storage.set(UNIT_KEY, unit)
        if self.location is not None:
            await self.refresh()

    def display_temperature(self) -> str:
        if self.current_weather is None:
            return "N/A"
        return format_temperature(self.current_weather.temperature, self._unit)

    def display_wind_speed(self) -> str:
        if self.current_weather is None:
            return "N/A"
        return format_wind_speed(self.current_weather.wind_speed, self._unit)

    # ── Persistence ──────────────────────────────────────────────────────────

    def _persist_saved_locations(self) -> None:
        payload = [loc.model_dump(exclude_none=True) for loc in self.saved_locations]
        self.storage.set(SAVED_LOCATIONS_KEY, json.dumps(payload))

    def _load_saved_locations(self) -> List[Location]:
        raw = self.storage.get(SAVED_LOCATIONS_KEY)
        if not raw:
            return []
        try:
            return _saved.validate_json(raw)
        except ValidationError as exc:
            logger.warning("Ignoring unreadable saved locations: %s", exc)
            return []

    def _load_unit(self) -> Units:
        unit = self.storage.get(UNIT_KEY)
        return unit if unit in get_args(Units) else "metric"
