"""Application configuration."""

from typing import Optional
from urllib.parse import urlparse

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    postgres_host: str = "postgres"
    postgres_port: int = 5432
    postgres_user: str = "bizmedia"
    postgres_password: str = "changeme"
    postgres_db: str = "bizmedia_db"

    # Redis
    redis_url: str = "redis://redis:6379/0"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_reload: bool = True

    # Celery
    celery_broker_url: str = "redis://redis:6379/0"
    celery_result_backend: str = "redis://redis:6379/0"

    # Object storage
    storage_provider: str = "local"  # 'local' or 's3'
    storage_base_path: str = "/data/business-images"
    storage_bucket: str = "business-images"
    storage_public_base_url: Optional[str] = "http://localhost:8000/media/business-images"
    aws_access_key_id: Optional[str] = None
    aws_secret_access_key: Optional[str] = None
    aws_region: str = "us-east-1"
    s3_endpoint_url: Optional[str] = None

    # Upload ceilings (MB)
    logo_max_size_mb: int = 5
    gallery_max_size_mb: int = 10

    # Compression
    logo_compress_threshold_mb: float = 1.0
    logo_max_dimension: int = 800
    logo_quality: float = 0.9
    gallery_compress_threshold_mb: float = 2.0
    gallery_max_dimension: int = 1200
    gallery_quality: float = 0.85

    # Orphan sweep
    orphan_grace_period_minutes: int = 60

    @property
    def database_url(self) -> str:
        """Build database URL."""
        return (
            f"postgresql://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def media_mount_path(self) -> Optional[str]:
        """URL path the local storage directory is served under, if any."""
        if self.storage_provider != "local" or not self.storage_public_base_url:
            return None
        path = urlparse(self.storage_public_base_url).path.rstrip("/")
        return path or None


settings = Settings()
