from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    app_name: str = "weatherdash"
    log_level: str = "INFO"

    # Weather provider
    openweather_api_key: str
    openweather_base_url: str = "https://api.openweathermap.org/data/2.5"
    openweather_geo_url: str = "https://api.openweathermap.org/geo/1.0"
    openweather_lang: str = "en"

    # Photo provider
    google_api_key: Optional[str] = None
    places_base_url: str = "https://places.googleapis.com/v1"

    # Upstream tuning
    http_timeout_seconds: float = 5.0


settings = Settings()
