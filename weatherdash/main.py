import logging
from typing import Any, Awaitable, List, Optional, Type, TypeVar

import httpx
from fastapi import Body, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from weatherdash.config import settings
from weatherdash.errors import BadRequest, InternalError, NotFound, ProxyError, UpstreamError
from weatherdash.logging_config import configure_logging
from weatherdash.models import (
    ForecastResponse,
    Location,
    OWCurrent,
    OWForecast,
    PhotoResult,
    PlacesSearchResult,
    SavedLocationsRequest,
    SavedLocationsResponse,
)
from weatherdash.services.batch import fetch_saved_weather
from weatherdash.services.forecast import reduce_daily
from weatherdash.services.openweather import OpenWeatherClient
from weatherdash.services.places import PlacesClient

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)

ow = OpenWeatherClient(
    settings.openweather_base_url,
    settings.openweather_api_key,
    settings.openweather_geo_url,
    lang=settings.openweather_lang,
    timeout_seconds=settings.http_timeout_seconds,
)
places = PlacesClient(
    settings.google_api_key,
    settings.places_base_url,
    timeout_seconds=settings.http_timeout_seconds,
)

M = TypeVar("M", bound=BaseModel)


@app.exception_handler(ProxyError)
async def proxy_error_handler(request: Request, exc: ProxyError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request parameters", "details": jsonable_encoder(exc.errors())},
    )


@app.get("/health")
def health():
    return {"status": "ok", "service": settings.app_name}


@app.get("/")
def root():
    return JSONResponse({"service": settings.app_name, "docs": "/docs"})


# ── Weather endpoints ────────────────────────────────────────────────────────

@app.get("/v1/weather/current")
async def current_weather(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
):
    _require_coords(lat, lon)
    data = await _upstream(ow.get_current(lat=lat, lon=lon), "weather data")
    _parse(OWCurrent, data, "weather")
    return JSONResponse(data)


@app.get("/v1/weather/forecast", response_model=ForecastResponse)
async def forecast(
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lon: Optional[float] = Query(None, ge=-180, le=180),
):
    _require_coords(lat, lon)
    data = await _upstream(ow.get_forecast(lat=lat, lon=lon), "forecast data")
    parsed = _parse(OWForecast, data, "forecast")
    return ForecastResponse(list=reduce_daily(parsed.list, parsed.city.timezone))


@app.post("/v1/weather/saved", response_model=SavedLocationsResponse)
async def saved_location_weather(body: Optional[SavedLocationsRequest] = Body(None)):
    if body is None:
        raise BadRequest("Missing location data in request body")
    weather = await fetch_saved_weather(ow, body.locations)
    return SavedLocationsResponse(weather_data=weather)


# ── Lookup endpoints ─────────────────────────────────────────────────────────

@app.get("/v1/locations/search", response_model=List[Location])
async def search_location(query: Optional[str] = Query(None)):
    if not query or not query.strip():
        raise BadRequest("Missing query parameter")
    hits = await _upstream(ow.search(query.strip(), limit=5), "location search")
    if not isinstance(hits, list):
        raise UpstreamError("Unexpected location search response from upstream")
    return [_parse(Location, hit, "location search") for hit in hits]


@app.get("/v1/photos/city", response_model=PhotoResult)
async def city_photo(city_name: Optional[str] = Query(None, alias="cityName")):
    if not city_name or not city_name.strip():
        raise BadRequest("Missing cityName parameter")
    if not places.api_key:
        raise InternalError("API key configuration missing")

    logger.info("Looking up photo for city: %s", city_name)
    try:
        payload = await places.search_text(f"{city_name} landmark")
    except httpx.HTTPStatusError as exc:
        logger.error("Places search failed: status %s, body %s", exc.response.status_code, exc.response.text)
        raise UpstreamError(
            f"Google Places API error: {exc.response.reason_phrase}",
            details=exc.response.text,
            status_code=exc.response.status_code,
        )
    except Exception as exc:
        logger.exception("Error fetching city photo")
        raise InternalError("Failed to fetch city photo", message=str(exc))

    result = _parse(PlacesSearchResult, payload, "places")
    if not result.places:
        logger.info("No places found for city: %s", city_name)
        raise NotFound("No places found for this city")

    place = next((p for p in result.places if p.photos), None)
    if place is None:
        first = result.places[0].display_name
        raise NotFound("No photos found for this city", extra={"placeInfo": first.text if first else None})

    place_name = place.display_name.text if place.display_name and place.display_name.text else city_name
    return PhotoResult(photo_url=places.photo_media_url(place.photos[0].name), place_name=place_name)


# ── Shared helpers ───────────────────────────────────────────────────────────

def _require_coords(lat: Optional[float], lon: Optional[float]) -> None:
    if lat is None or lon is None:
        raise BadRequest("Missing latitude or longitude in query parameters")


async def _upstream(call: Awaitable[Any], what: str) -> Any:
    """Await an OpenWeather call; non-2xx mirrors the upstream status, anything else is a 500."""
    try:
        return await call
    except httpx.HTTPStatusError as exc:
        logger.error("Upstream %s error: status %s", what, exc.response.status_code)
        raise UpstreamError(
            f"OpenWeatherMap error: {exc.response.reason_phrase}",
            details=exc.response.text,
            status_code=exc.response.status_code,
        )
    except Exception as exc:
        logger.exception("Failed to fetch %s", what)
        raise InternalError(f"Failed to fetch {what}", message=str(exc))


def _parse(model: Type[M], payload: Any, what: str) -> M:
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        logger.error("Unexpected %s payload from upstream: %s", what, exc)
        raise UpstreamError(
            f"Unexpected {what} response from upstream",
            details=jsonable_encoder(exc.errors(include_url=False, include_context=False)),
        )
