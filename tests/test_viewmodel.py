"""Tests for the dashboard view model."""
import asyncio
import json

import pytest

from weatherdash.dashboard.saved_weather import SavedLocationWeatherCache
from weatherdash.dashboard.storage import SAVED_LOCATIONS_KEY, UNIT_KEY, MemoryStorage
from weatherdash.dashboard.viewmodel import DEFAULT_LOCATION, GENERIC_ERROR, ViewState, WeatherViewModel
from weatherdash.errors import ClientFetchError
from weatherdash.models import CacheEntry, CurrentWeather, DailyForecastEntry, Location

LONDON = Location(lat=51.5074, lon=-0.1278, name="London", country="GB")
PARIS = Location(lat=48.8566, lon=2.3522, name="Paris", country="FR")


def _weather(city, updated="2026-10-18T12:00:00+00:00"):
    return CurrentWeather(
        temperature=20,
        feels_like=19,
        description="clear sky",
        humidity=40,
        wind_speed=3.0,
        pressure=1015,
        icon="01d",
        city=city,
        country="XX",
        sunrise=0,
        sunset=0,
        last_updated=updated,
    )


FORECAST = [
    DailyForecastEntry(day="Mon", date="Oct 19", temp=18, description="rain", icon="10d", humidity=80, wind_speed=5.0)
]


class FakeApi:
    def __init__(self):
        self.weather_calls = []
        self.fail_weather = False
        self.fail_forecast = False
        self.photo = "https://img.test/city.jpg"
        self.photo_gate = None
        self.gates = {}

    async def fetch_weather(self, location):
        self.weather_calls.append(location.name)
        gate = self.gates.get(location.name)
        if gate is not None:
            await gate.wait()
        if self.fail_weather:
            raise ClientFetchError("weather down", status_code=500)
        return _weather(location.name)

    async def fetch_forecast(self, location):
        if self.fail_forecast:
            raise ClientFetchError("forecast down", status_code=500)
        return FORECAST

    async def get_city_photo(self, city_name):
        if self.photo_gate is not None:
            await self.photo_gate.wait()
        return self.photo

    async def fetch_saved_location_weather(self, locations):
        return {loc.key: CacheEntry(temp=7, icon="02d", timestamp=0) for loc in locations}


def _vm(api=None, storage=None, **kwargs):
    return WeatherViewModel(api or FakeApi(), storage or MemoryStorage(), **kwargs)


def test_select_location_success():
    vm = _vm()
    assert vm.state is ViewState.IDLE

    async def run():
        selected = await vm.select_location(LONDON)
        await vm.wait_for_photo()
        return selected

    assert asyncio.run(run()) is True
    assert vm.state is ViewState.READY
    assert vm.location == LONDON
    assert vm.current_weather.city == "London"
    assert vm.forecast == FORECAST
    assert vm.photo_url == "https://img.test/city.jpg"
    assert vm.last_updated == "2026-10-18T12:00:00+00:00"
    assert vm.error is None
    assert not vm.loading


@pytest.mark.parametrize("failing", ["fail_weather", "fail_forecast"])
def test_fetch_failure_sets_generic_error(failing):
    api = FakeApi()
    setattr(api, failing, True)
    vm = _vm(api)

    assert asyncio.run(vm.select_location(LONDON)) is False
    assert vm.state is ViewState.ERROR
    assert vm.error == GENERIC_ERROR
    assert not vm.loading


def test_missing_photo_does_not_block_weather():
    api = FakeApi()
    api.photo = None
    vm = _vm(api)

    assert asyncio.run(vm.select_location(LONDON)) is True
    assert vm.photo_url is None
    assert vm.state is ViewState.READY


def test_slow_photo_does_not_delay_weather():
    api = FakeApi()
    api.photo_gate = asyncio.Event()
    vm = _vm(api)

    async def run():
        assert await vm.select_location(LONDON) is True
        assert vm.state is ViewState.READY
        assert vm.current_weather.city == "London"
        assert vm.forecast == FORECAST
        assert vm.photo_url is None

        api.photo_gate.set()
        return await vm.wait_for_photo()

    assert asyncio.run(run()) == "https://img.test/city.jpg"
    assert vm.photo_url == "https://img.test/city.jpg"


def test_photo_of_previous_selection_is_ignored():
    api = FakeApi()
    api.photo_gate = asyncio.Event()
    vm = _vm(api)

    async def run():
        await vm.select_location(LONDON)
        first_photo = vm._photo
        api.photo_gate = None
        api.photo = "https://img.test/paris.jpg"
        await vm.select_location(PARIS)
        photo_url = await vm.wait_for_photo()
        assert first_photo.cancelled()
        return photo_url

    assert asyncio.run(run()) == "https://img.test/paris.jpg"
    assert vm.current_weather.city == "Paris"


def test_error_is_cleared_on_next_selection():
    api = FakeApi()
    api.fail_weather = True
    vm = _vm(api)

    async def run():
        await vm.select_location(LONDON)
        api.fail_weather = False
        await vm.refresh()

    asyncio.run(run())
    assert vm.error is None
    assert vm.state is ViewState.READY


def test_superseded_selection_is_discarded():
    api = FakeApi()
    api.gates["London"] = asyncio.Event()
    vm = _vm(api)

    async def run():
        slow = asyncio.create_task(vm.select_location(LONDON))
        await asyncio.sleep(0)
        assert await vm.select_location(PARIS) is True
        api.gates["London"].set()
        return await slow

    assert asyncio.run(run()) is False
    assert vm.location == PARIS
    assert vm.current_weather.city == "Paris"
    assert vm.state is ViewState.READY


def test_refresh_without_location_is_noop():
    vm = _vm()
    assert asyncio.run(vm.refresh()) is False
    assert vm.state is ViewState.IDLE


def test_add_saved_location_dedupes_by_name():
    vm = _vm()
    assert vm.add_saved_location(LONDON) is True
    assert vm.add_saved_location(Location(lat=42.98, lon=-81.23, name="London", country="CA")) is False
    assert vm.saved_locations == [LONDON]


def test_remove_unknown_location_leaves_list_unchanged():
    storage = MemoryStorage()
    vm = _vm(storage=storage)
    vm.add_saved_location(LONDON)
    before = storage.get(SAVED_LOCATIONS_KEY)

    assert vm.remove_saved_location("X") is False
    assert vm.saved_locations == [LONDON]
    assert storage.get(SAVED_LOCATIONS_KEY) == before


def test_remove_last_location_is_persisted():
    storage = MemoryStorage()
    vm = _vm(storage=storage)
    vm.add_saved_location(LONDON)

    assert vm.remove_saved_location("London") is True
    assert json.loads(storage.get(SAVED_LOCATIONS_KEY)) == []


def test_saved_locations_survive_reload():
    storage = MemoryStorage()
    vm = _vm(storage=storage)
    vm.add_saved_location(PARIS)
    vm.add_saved_location(LONDON)

    reloaded = _vm(storage=storage)
    asyncio.run(reloaded.start())
    assert reloaded.saved_locations == [PARIS, LONDON]


def test_start_uses_locator_and_falls_back_to_default():
    async def locate():
        return Location(lat=55.6, lon=13.0, name="Current Location")

    async def denied():
        raise PermissionError("geolocation denied")

    located = _vm(locator=locate)
    asyncio.run(located.start())
    assert located.location.name == "Current Location"
    assert located.current_weather.city == "Current Location"

    fallback = _vm(locator=denied)
    asyncio.run(fallback.start())
    assert fallback.location == DEFAULT_LOCATION
    assert fallback.state is ViewState.READY


def test_unit_is_persisted_and_triggers_refetch():
    api, storage = FakeApi(), MemoryStorage()
    vm = _vm(api, storage)

    async def run():
        await vm.select_location(LONDON)
        await vm.set_unit("imperial")
        await vm.set_unit("imperial")

    asyncio.run(run())
    assert vm.unit == "imperial"
    assert storage.get(UNIT_KEY) == "imperial"
    assert api.weather_calls == ["London", "London"]
    assert vm.display_temperature() == "68°F"


def test_invalid_unit_is_rejected():
    with pytest.raises(ValueError):
        asyncio.run(_vm().set_unit("kelvin"))


def test_persisted_unit_is_restored():
    storage = MemoryStorage({UNIT_KEY: "imperial"})
    vm = _vm(storage=storage)
    asyncio.run(vm.start())
    assert vm.unit == "imperial"

    garbage = _vm(storage=MemoryStorage({UNIT_KEY: "kelvin"}))
    asyncio.run(garbage.start())
    assert garbage.unit == "metric"


def test_saved_weather_lifecycle():
    api, storage = FakeApi(), MemoryStorage()
    cache = SavedLocationWeatherCache(api, storage, clock=lambda: 0)
    vm = _vm(api, storage, saved_weather=cache)

    async def run():
        await vm.start()
        vm.add_saved_location(LONDON)
        vm.add_saved_location(PARIS)
        for _ in range(10):
            await asyncio.sleep(0)
        assert vm.saved_weather_for(LONDON).temp == 7
        assert vm.saved_weather_for(PARIS).temp == 7

        vm.remove_saved_location("Paris")
        assert vm.saved_weather_for(PARIS) is None
        await vm.close()

    asyncio.run(run())
    assert cache._task is None
