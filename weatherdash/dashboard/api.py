import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from weatherdash.errors import ClientFetchError
from weatherdash.models import (
    CacheEntry,
    CurrentWeather,
    DailyForecastEntry,
    ForecastResponse,
    Location,
    OWCurrent,
    PhotoResult,
    SavedLocationsResponse,
    browser_round,
)

logger = logging.getLogger(__name__)

_locations = TypeAdapter(List[Location])


def to_current_weather(data: OWCurrent, fetched_at: Optional[datetime] = None) -> CurrentWeather:
    fetched_at = fetched_at or datetime.now(timezone.utc)
    condition = data.weather[0]
    return CurrentWeather(
        temperature=browser_round(data.main.temp),
        feels_like=browser_round(data.main.feels_like if data.main.feels_like is not None else data.main.temp),
        description=condition.description,
        humidity=data.main.humidity,
        wind_speed=data.wind.speed,
        pressure=int(data.main.pressure or 0),
        icon=condition.icon,
        city=data.name,
        country=data.sys.country or "",
        sunrise=(data.sys.sunrise or 0) * 1000,
        sunset=(data.sys.sunset or 0) * 1000,
        last_updated=fetched_at.isoformat(),
    )


class DashboardApi:
    """Client for the proxy routes, as used by the dashboard."""

    def __init__(self, base_url: str, timeout_seconds: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout_seconds
        self._transport = transport

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                r = await client.request(method, url, **kwargs)
                r.raise_for_status()
                return r.json()
        except httpx.HTTPStatusError as exc:
            raise ClientFetchError(
                f"{path} failed: {exc.response.reason_phrase}", status_code=exc.response.status_code
            ) from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise ClientFetchError(f"{path} failed: {exc}") from exc

    async def fetch_weather(self, location: Location) -> CurrentWeather:
        data = await self._request("GET", "/v1/weather/current", params={"lat": location.lat, "lon": location.lon})
        try:
            return to_current_weather(OWCurrent.model_validate(data))
        except ValidationError as exc:
            raise ClientFetchError(f"Malformed weather response: {exc}") from exc

    async def fetch_forecast(self, location: Location) -> List[DailyForecastEntry]:
        data = await self._request("GET", "/v1/weather/forecast", params={"lat": location.lat, "lon": location.lon})
        try:
            return ForecastResponse.model_validate(data).list
        except ValidationError as exc:
            raise ClientFetchError(f"Malformed forecast response: {exc}") from exc

    async def search_locations(self, query: str) -> List[Location]:
        data = await self._request("GET", "/v1/locations/search", params={"query": query})
        try:
            return _locations.validate_python(data)
        except ValidationError as exc:
            raise ClientFetchError(f"Malformed search response: {exc}") from exc

    async def get_city_photo(self, city_name: str) -> Optional[str]:
        """Photo URL for a city, or None; a missing photo never counts as a failure."""
        try:
            data = await self._request("GET", "/v1/photos/city", params={"cityName": city_name})
            return PhotoResult.model_validate(data).photo_url
        except (ClientFetchError, ValidationError) as exc:
            logger.warning("No city photo for %s: %s", city_name, exc)
            return None

    async def fetch_saved_location_weather(self, locations: List[Location]) -> Dict[str, CacheEntry]:
        body = {"locations": [loc.model_dump(exclude_none=True) for loc in locations]}
        data = await self._request("POST", "/v1/weather/saved", json=body)
        try:
            return SavedLocationsResponse.model_validate(data).weather_data
        except ValidationError as exc:
            raise ClientFetchError(f"Malformed saved-location response: {exc}") from exc
