"""Application configuration from environment variables."""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./cavok.db",
        description="SQLAlchemy async connection URL for the local weather cache",
    )

    # Application
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173", "http://localhost:8080"],
        description="Allowed CORS origins (comma-separated or JSON array)",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str] | None) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        if v is None:
            return ["http://localhost:5173", "http://localhost:8080"]
        if isinstance(v, list):
            return v
        if isinstance(v, str):
            # Handle comma-separated values
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        """Logging level names are upper case."""
        return v.strip().upper()

    # Upstream weather source
    aviationweather_url: str = Field(
        default="https://aviationweather.gov/api/data",
        description="Base URL of the aviationweather.gov data API",
    )
    fetch_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single upstream request (seconds)",
    )
    fetch_chunk_size: int = Field(
        default=200,
        ge=1,
        description="Maximum number of station identifiers per observation request",
    )
    observation_hours: int = Field(
        default=2,
        ge=1,
        le=72,
        description="How many hours of METAR history to request",
    )

    @field_validator("aviationweather_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Ensure URL has a scheme."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("URL must start with http:// or https://")
        return v.rstrip("/")

    # Weather model
    bucket_minutes: int = Field(
        default=30,
        ge=1,
        le=1440,
        description="Width of an observation timeslot (minutes)",
    )
    earth_radius_km: float = Field(
        default=6371.01,
        gt=0,
        description="Earth radius used in great-circle math (km)",
    )
    tile_zoom: int = Field(
        default=8,
        ge=0,
        le=22,
        description="Default zoom level for region-to-tile conversion",
    )
    default_region_radius_km: int = Field(
        default=100,
        gt=0,
        description="Radius offered for a new region selection (km)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
