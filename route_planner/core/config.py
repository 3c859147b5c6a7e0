# route_planner/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables (.env file).
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    APP_NAME: str = "Route Planner API"
    APP_VERSION: str = "0.1.0"
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # Mapbox directions / geocoding
    MAPBOX_ACCESS_TOKEN: str = ""
    MAPBOX_BASE_URL: str = "https://api.mapbox.com"
    ROUTE_PROFILE: str = "cycling"
    REQUEST_ALTERNATIVES: bool = True
    HTTP_TIMEOUT_S: float = 10.0

    # Place search
    SEARCH_DEBOUNCE_S: float = 0.3
    GEOCODING_LIMIT: int = 5
    GEOCODING_TYPES: str = "place,address,poi"
    GEOCODING_LANGUAGE: str = "en"

    # Map view defaults (San Francisco)
    DEFAULT_CENTER_LAT: float = 37.7749
    DEFAULT_CENTER_LON: float = -122.4194
    DEFAULT_ZOOM: int = 13
    FIT_PADDING_PX: int = 50
    FIT_MAX_ZOOM: int = 16


settings = Settings()
