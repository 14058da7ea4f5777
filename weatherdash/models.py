import math
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


Units = Literal["metric", "imperial"]


def browser_round(value: float) -> int:
    """Round like ``Math.round``: halves go up, also for negatives."""
    return int(math.floor(value + 0.5))


def _js_number(value: float) -> str:
    """Shortest round-trip text, fixed-point from 1e-6 up to 1e21 like ``Number.prototype.toString``."""
    value = float(value)
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    text = repr(value)
    if "e" not in text:
        return text
    if 1e-6 <= abs(value) < 1e21:
        return format(Decimal(text), "f")
    mantissa, exponent = text.split("e")
    return f"{mantissa}e{int(exponent):+d}"


def location_key(lat: float, lon: float) -> str:
    return f"{_js_number(lat)}-{_js_number(lon)}"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Dashboard data ───────────────────────────────────────────────────────────

class Location(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lon: float = Field(..., ge=-180, le=180)
    name: str
    country: Optional[str] = None
    state: Optional[str] = None

    @property
    def key(self) -> str:
        return location_key(self.lat, self.lon)


class CurrentWeather(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    temperature: int
    feels_like: int
    description: str
    humidity: float
    wind_speed: float
    pressure: int
    icon: str
    city: str
    country: str
    sunrise: int
    sunset: int
    last_updated: str


class DailyForecastEntry(CamelModel):
    day: str
    date: str
    temp: int
    description: str
    icon: str
    humidity: float
    wind_speed: float


class ForecastResponse(BaseModel):
    list: List[DailyForecastEntry] = Field(default_factory=list)


class CacheEntry(BaseModel):
    temp: int
    icon: str
    timestamp: int


class SavedLocationsRequest(BaseModel):
    locations: List[Location] = Field(..., min_length=1)


class SavedLocationsResponse(CamelModel):
    weather_data: Dict[str, CacheEntry] = Field(default_factory=dict)


class PhotoResult(CamelModel):
    photo_url: str
    place_name: Optional[str] = None


# ── Upstream boundary: OpenWeather ───────────────────────────────────────────

class OWCondition(BaseModel):
    description: str
    icon: str


class OWMain(BaseModel):
    temp: float
    feels_like: Optional[float] = None
    humidity: float
    pressure: Optional[float] = None


class OWWind(BaseModel):
    speed: float


class OWSys(BaseModel):
    country: Optional[str] = None
    sunrise: Optional[int] = None
    sunset: Optional[int] = None


class OWCurrent(BaseModel):
    name: str = ""
    main: OWMain
    weather: List[OWCondition] = Field(..., min_length=1)
    wind: OWWind
    sys: OWSys = Field(default_factory=OWSys)
    dt: Optional[int] = None


class OWForecastSample(BaseModel):
    dt: int
    main: OWMain
    weather: List[OWCondition] = Field(..., min_length=1)
    wind: OWWind


class OWCity(BaseModel):
    name: Optional[str] = None
    country: Optional[str] = None
    timezone: int = 0


class OWForecast(BaseModel):
    list: List[OWForecastSample]
    city: OWCity = Field(default_factory=OWCity)


# ── Upstream boundary: Google Places ─────────────────────────────────────────

class PlacePhoto(BaseModel):
    name: str


class PlaceDisplayName(BaseModel):
    text: Optional[str] = None


class Place(CamelModel):
    id: Optional[str] = None
    display_name: Optional[PlaceDisplayName] = None
    photos: List[PlacePhoto] = Field(default_factory=list)


class PlacesSearchResult(BaseModel):
    places: List[Place] = Field(default_factory=list)
