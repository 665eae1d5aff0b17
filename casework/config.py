"""
Configuration and settings for the case-management backend.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")

    # Database: restricted (row-level security) and service-role connections
    database_url: Optional[str] = Field(default=None)
    service_database_url: Optional[str] = Field(default=None)

    # Hosted identity provider (GoTrue-compatible REST API)
    auth_url: Optional[str] = Field(default=None)
    auth_anon_key: Optional[str] = Field(default=None)
    auth_service_role_key: Optional[str] = Field(default=None)
    auth_timeout_seconds: float = Field(default=10.0)

    # S3-compatible object storage
    storage_endpoint: Optional[str] = Field(default=None)
    storage_region: Optional[str] = Field(default=None)
    storage_public_url: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    documents_bucket: str = Field(default="application-documents")
    photos_bucket: str = Field(default="visit-photos")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    # Listing limits and report windows
    applications_list_limit: int = Field(default=1000)
    search_result_limit: int = Field(default=20)
    worker_visits_default_limit: int = Field(default=20)
    urgent_auction_window_days: int = Field(default=30)
    report_auction_window_days: int = Field(default=7)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
