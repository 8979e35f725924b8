"""
Application configuration using Pydantic settings.
"""
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Bloom Dataset Configuration
    bloom_dataset_sources: list[str] = Field(
        default=["data/us_east_features_labels_2015_2024.csv"],
        description="CSV files (local paths or URLs) holding bloom observations"
    )
    americas_data_dir: str = Field(
        default="data/GEE_Exports_Americas",
        description="Directory (or base URL) of the regional Americas CSV exports"
    )
    americas_catalog_enabled: bool = Field(
        default=False,
        description="Serve viewport requests from the regional Americas exports as well"
    )
    herbarium_data_path: str = Field(
        default="data/herbarium/processed_data_final_augmented.json",
        description="JSON file with herbarium specimen records"
    )
    iucn_data_path: str = Field(
        default="data/herbarium/iucn_analysis.json",
        description="JSON file with IUCN status analysis"
    )

    # Synthetic Fallback Grid
    synthetic_min_lat: float = Field(default=25.0, description="Southern edge of the fallback grid")
    synthetic_max_lat: float = Field(default=45.0, description="Northern edge of the fallback grid")
    synthetic_min_lon: float = Field(default=-85.0, description="Western edge of the fallback grid")
    synthetic_max_lon: float = Field(default=-70.0, description="Eastern edge of the fallback grid")
    synthetic_step: float = Field(default=2.5, description="Grid spacing in degrees")
    synthetic_year: int = Field(default=2020, description="Year stamped on synthetic points")
    synthetic_month: int = Field(default=4, description="Month stamped on synthetic points")

    # Dataset Cache
    dataset_cache_max_entries: int = Field(
        default=16,
        description="Maximum number of parsed datasets kept in memory"
    )
    dataset_cache_max_points: int = Field(
        default=2_000_000,
        description="Maximum number of points across all cached datasets"
    )

    # Location Search Parameters
    search_radii: list[float] = Field(
        default=[0.5, 1.0, 2.0, 5.0, 10.0],
        description="Expanding square search radii in degrees"
    )
    nearest_k: int = Field(
        default=50,
        description="Number of nearest points used when no radius finds a match"
    )

    # Region Resolution
    region_name: str = Field(
        default="americas",
        description="Region whose bounding box decides between CSV data and the weather API"
    )
    inside_region_threshold: float = Field(
        default=5.0,
        description="Maximum distance (degrees) to a CSV point inside the region"
    )
    outside_region_threshold: float = Field(
        default=10.0,
        description="Maximum distance (degrees) to a CSV point outside the region"
    )

    # External API Configuration
    weather_api_base_url: str = Field(
        default="https://power.larc.nasa.gov",
        description="Base URL for the NASA POWER climate API"
    )
    tle_api_base_url: str = Field(
        default="https://tle.ivanstanojevic.me",
        description="Base URL for the primary TLE lookup API"
    )
    celestrak_base_url: str = Field(
        default="https://celestrak.org",
        description="Base URL for the CelesTrak fallback TLE service"
    )
    http_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for outbound HTTP requests"
    )

    # Retry Configuration
    max_retry_attempts: int = Field(
        default=3,
        description="Maximum number of retry attempts for API calls"
    )
    retry_backoff_multiplier: int = Field(
        default=1,
        description="Multiplier for exponential backoff"
    )
    retry_min_wait: int = Field(
        default=1,
        description="Minimum wait time in seconds between retries"
    )
    retry_max_wait: int = Field(
        default=10,
        description="Maximum wait time in seconds between retries"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)"
    )

    # CORS Configuration
    cors_origins: list[str] = Field(
        default=["*"],
        description="Allowed CORS origins (use specific origins in production)"
    )

    # Rate Limiting
    rate_limit_requests: int = Field(
        default=100,
        description="Maximum requests per minute per client"
    )

    # Application Settings
    app_name: str = Field(
        default="BloomGlobe Data Service",
        description="Application name"
    )
    app_version: str = Field(
        default="1.0.0",
        description="Application version"
    )
    debug: bool = Field(
        default=False,
        description="Debug mode"
    )

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()
