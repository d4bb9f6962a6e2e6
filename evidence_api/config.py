from typing import List

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # API
    api_title: str = "Evidence Verification API"
    api_version: str = "0.1.0"
    api_host: str = "0.0.0.0"
    api_port: int = 5123
    api_log_level: str = "info"
    api_prefix: str = "/api/evidence"

    api_cors_origins: List[AnyHttpUrl] = Field(default_factory=list)
    api_keys: List[str] = Field(
        default_factory=list,
        description="Allowed API keys for protected endpoints.",
    )

    # Uploads
    max_files_per_request: int = Field(
        6,
        ge=1,
        description="Maximum number of photos accepted by one verify request.",
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


settings = Settings()
