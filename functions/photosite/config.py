"""
Configuration and settings for the photosite service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_LOGO_URL = "https://images.pexels.com/photos/1983032/pexels-photo-1983032.jpeg"
DEFAULT_POST_IMAGE_URL = DEFAULT_LOGO_URL


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    log_level: str = Field(default="INFO")
    cors_allow_origins: list[str] = Field(default_factory=lambda: ["*"])

    # Record store: "memory" for dev/tests, "sql" for a direct Postgres
    # connection, "rest" for the hosted store's REST interface.
    store_backend: Literal["memory", "sql", "rest"] = Field(default="memory")
    store_url: Optional[str] = Field(default=None)
    store_api_key: Optional[str] = Field(default=None)
    store_timeout_seconds: Optional[float] = Field(default=None)
    database_url: Optional[str] = Field(default=None)

    # S3 object storage used by the upload relay
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    aws_region: str = Field(default="us-east-1")
    aws_bucket_name: Optional[str] = Field(default=None)
    s3_endpoint: Optional[str] = Field(default=None)
    use_in_memory_storage: bool = Field(default=False)

    # Where the upload client posts files. Defaults to the relay function
    # hosted next to the record store.
    upload_relay_url: Optional[str] = Field(default=None)

    # Admin access
    admin_password_hash: Optional[str] = Field(default=None)
    admin_password: Optional[str] = Field(default=None)
    session_ttl_seconds: int = Field(default=8 * 60 * 60)
    session_cookie_name: str = Field(default="photosite_admin")
    redis_url: Optional[str] = Field(default=None)
    redis_session_prefix: str = Field(default="photosite:session:")

    # Legacy browser-cache replacement, not authoritative
    legacy_cache_dir: str = Field(default="data/legacy_cache")

    default_logo_url: str = Field(default=DEFAULT_LOGO_URL)
    default_post_image_url: str = Field(default=DEFAULT_POST_IMAGE_URL)

    @model_validator(mode="after")
    def _check_store_config(self) -> "Settings":
        if self.store_backend == "rest" and not (self.store_url and self.store_api_key):
            raise ValueError(
                "STORE_URL and STORE_API_KEY are required for the rest store backend"
            )
        if self.store_backend == "sql" and not self.database_url:
            raise ValueError("DATABASE_URL is required for the sql store backend")
        return self

    @property
    def relay_endpoint(self) -> Optional[str]:
        if self.upload_relay_url:
            return self.upload_relay_url
        if self.store_url:
            return f"{self.store_url.rstrip('/')}/functions/v1/upload-to-s3"
        return None


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
