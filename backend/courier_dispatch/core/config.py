from typing import Annotated, Any, Literal

from pydantic import AnyUrl, BeforeValidator, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )
    API_V1_STR: str = "/api/v1"
    PROJECT_NAME: str = "courier-dispatch"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    SENTRY_DSN: AnyUrl | None = None

    FRONTEND_HOST: str = "http://localhost:5173"
    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    SQLALCHEMY_DATABASE_URI: str = "sqlite:///./courier_dispatch.db"
    SQLALCHEMY_ECHO: bool = False

    # Routing provider (Google Directions). Empty key disables provider calls.
    GOOGLE_MAPS_API_KEY: str = ""
    DIRECTIONS_BASE_URL: str = "https://maps.googleapis.com/maps/api/directions/json"
    DIRECTIONS_TIMEOUT_SECONDS: float = 10.0

    # Optimizer defaults
    DEFAULT_SERVICE_SECONDS: int = 120
    SHORT_HOP_METERS: int = 20
    TIE_NUDGE_SECONDS: int = 60
    CHUNK_SIZE: int = 3
    CHUNK_DELAY_MS: int = 800

    # Enrichment defaults
    LEG_CONCURRENCY: int = 5
    ROUTE_CONCURRENCY: int = 3
    ENRICH_ROUTE_LIMIT: int = 20

    # Travel estimates and cache
    FALLBACK_SPEED_KMH: float = 30.0
    TRAVEL_CACHE_TTL_HOURS: int = 24
    TRAVEL_CACHE_BUCKET_MINUTES: int = 15

    # Used by the legacy optimizer when an agent has no start location
    DEFAULT_DEPOT_LAT: float = 13.7563
    DEFAULT_DEPOT_LNG: float = 100.5018


settings = Settings()  # type: ignore
