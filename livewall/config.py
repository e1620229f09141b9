"""
Configuration and settings for the live wall backend.
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

    # Database (any SQLAlchemy URL; Postgres expected in production)
    database_url: Optional[str] = Field(default=None)

    # S3 object storage
    aws_region: str = Field(default="us-east-1")
    aws_s3_bucket_name: Optional[str] = Field(default=None)
    aws_access_key_id: Optional[str] = Field(default=None)
    aws_secret_access_key: Optional[str] = Field(default=None)
    s3_endpoint_url: Optional[str] = Field(default=None)
    s3_public_base_url: Optional[str] = Field(default=None)

    # Shared secret for POST /users/admin/create. Unset disables the route.
    admin_create_secret: Optional[str] = Field(default=None)

    bcrypt_rounds: int = Field(default=10, ge=4, le=31)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=3000)
    use_https: bool = Field(default=False)
    ssl_certfile: Optional[str] = Field(default=None)
    ssl_keyfile: Optional[str] = Field(default=None)
    log_level: str = Field(default="INFO")

    # Development toggles
    use_in_memory_backends: bool = Field(default=False)

    @property
    def storage_configured(self) -> bool:
        return bool(
            self.aws_s3_bucket_name
            and self.aws_access_key_id
            and self.aws_secret_access_key
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
