"""
Verification Engine Configuration

Thresholds, storage and geocoding settings for the evidence verification engine.
"""

from pydantic import Field
from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    """Configuration for the image verification engine."""

    # Upload limits
    verify_max_file_size: int = Field(
        default=12 * 1024 * 1024,
        ge=1,
        description="Maximum accepted image size in bytes (12 MB)",
    )

    # Duplicate detection
    verify_hamming_threshold: int = Field(
        default=5,
        ge=0,
        le=64,
        description="Maximum Hamming distance (bits out of 64) treated as a duplicate",
    )

    # Error Level Analysis
    verify_ela_threshold: float = Field(
        default=35.0,
        ge=0,
        le=255,
        description="Mean ELA divergence (0-255) above which an image is flagged",
    )
    verify_ela_quality: int = Field(
        default=85,
        ge=1,
        le=95,
        description="JPEG quality used for the ELA re-encode",
    )

    # Location cross-validation
    verify_gps_threshold_m: float = Field(
        default=500.0,
        ge=0,
        description="Maximum distance in metres between EXIF GPS and reported location",
    )

    # Fingerprint store
    verify_store_backend: str = Field(
        default="json",
        description="Fingerprint store backend: json, sql or memory",
    )
    verify_store_path: str = "image-hash-db.json"
    verify_store_database_url: str = "sqlite:///image-hashes.db"
    verify_store_limit: int = Field(
        default=1000,
        ge=1,
        description="Number of most recent accepted fingerprints kept",
    )

    # Batch execution
    verify_max_workers: int = Field(
        default=1,
        ge=1,
        description="Threads used to check images of one batch (1 = sequential)",
    )

    # Geocoding (OpenStreetMap Nominatim)
    geocoder_enabled: bool = True
    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    geocoder_user_agent: str = "evidence-verify/0.1 (contact@example.org)"
    geocoder_timeout_seconds: float = 5.0
    geocoder_retries: int = Field(default=2, ge=1)

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Global config instance
settings = EngineSettings()
