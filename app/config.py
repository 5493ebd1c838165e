"""Configuration settings for the Lead Scoring & Geospatial Analytics API."""

from functools import lru_cache
from typing import Dict, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Settings
    app_name: str = "Lead Scoring & Geospatial Analytics API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Server Settings
    host: str = "0.0.0.0"
    port: int = 8000

    # Geodata / Geocoding Providers
    mapbox_api_key: Optional[str] = None
    mapbox_base_url: str = "https://api.mapbox.com/geocoding/v5/mapbox.places"
    overpass_endpoint: str = "https://overpass-api.de/api/interpreter"
    nominatim_endpoint: str = "https://nominatim.openstreetmap.org/search"
    osm_user_agent: str = "LeadVerifyPro/1.0"
    walkscore_api_key: Optional[str] = None
    walkscore_endpoint: str = "https://api.walkscore.com/score"

    # School / Property Value Providers (optional HTTP endpoints)
    schools_api_key: Optional[str] = None
    schools_api_endpoint: Optional[str] = None
    property_values_api_key: Optional[str] = None
    property_values_api_endpoint: Optional[str] = None

    # Socrata Open Data (crime incidents & building permits)
    socrata_app_token: Optional[str] = None
    crime_domain: Optional[str] = None
    crime_dataset_id: Optional[str] = None
    crime_location_column: str = "location"
    crime_date_column: str = "date"
    crime_category_column: str = "primary_type"
    crime_lookback_days: int = 365
    crime_density_ceiling: float = 400.0  # incidents per km2 over the lookback that maps to score 0
    permits_domain: Optional[str] = None
    permits_dataset_id: Optional[str] = None
    permits_location_column: str = "location"
    permits_date_column: str = "issue_date"
    permits_type_column: str = "permit_type"
    permits_lookback_days: int = 730

    # Timeouts
    http_timeout_seconds: float = 15.0
    analyzer_timeout_seconds: float = 20.0

    # Cache Settings
    cache_ttl_seconds: int = 86400  # 24 hours
    lead_cache_ttl_seconds: int = 3600  # 1 hour
    cache_directory: str = ".cache"

    # Analysis Settings
    default_radius_miles: float = 1.0
    max_radius_miles: float = 5.0

    # Scoring Weights
    factor_weights: Dict[str, float] = {
        "proximity": 0.15,
        "schools": 0.15,
        "transit": 0.10,
        "crime": 0.20,
        "development": 0.20,
        "property_values": 0.20,
    }
    lead_score_weights: Dict[str, float] = {
        "contact_quality": 0.35,
        "property_quality": 0.25,
        "verification_status": 0.25,
        "ownership_verified": 0.15,
    }

    # Ideal maximum distance per amenity type (meters)
    ideal_distances: Dict[str, float] = {
        "grocery": 1000,
        "school": 1500,
        "park": 800,
        "restaurant": 800,
        "transit_station": 500,
        "hospital": 3000,
        "shopping_mall": 2000,
        "police": 3000,
        "fire_station": 3000,
    }

    # CORS Settings
    cors_origins: list = ["*"]  # Restrict in production, e.g., ["https://yourdomain.com"]

    # Logging
    log_level: str = "INFO"
    request_log_file: Optional[str] = None  # e.g. "logs/requests.jsonl"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
