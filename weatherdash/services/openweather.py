from typing import Any, Dict, List

import httpx


class OpenWeatherClient:
    """Thin async wrapper over the OpenWeather REST API. Always queries metric units."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        geo_url: str = "https://api.openweathermap.org/geo/1.0",
        lang: str = "en",
        timeout_seconds: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.geo_url = geo_url.rstrip("/")
        self.api_key = api_key
        self.lang = lang
        self.timeout = timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def _get(self, url: str, params: Dict[str, Any]) -> Any:
        params = {**params, "appid": self.api_key}
        async with self._client() as client:
            r = await client.get(url, params=params)
            r.raise_for_status()
            return r.json()

    async def get_current(self, lat: float, lon: float) -> Dict[str, Any]:
        url = f"{self.base_url}/weather"
        return await self._get(url, {"lat": lat, "lon": lon, "units": "metric", "lang": self.lang})

    async def get_forecast(self, lat: float, lon: float) -> Dict[str, Any]:
        # 5 day / 3 hour forecast
        url = f"{self.base_url}/forecast"
        return await self._get(url, {"lat": lat, "lon": lon, "units": "metric", "lang": self.lang})

    async def search(self, query: str, limit: int = 5) -> List[Dict[str, Any]]:
        """Direct geocoding: place name to up to ``limit`` candidate coordinates."""
        url = f"{self.geo_url}/direct"
        return await self._get(url, {"q": query, "limit": limit})
