"""
Application configuration using Pydantic Settings.

Loads environment variables and provides typed configuration access.
"""

import os
from pydantic_settings import BaseSettings
from typing import Optional, Literal


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Document Metadata Service"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    API_V1_PREFIX: str = "/api/v1"
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Database - uses SQLite by default for easy local dev
    DATABASE_URL: str = os.environ.get(
        "DATABASE_URL",
        "sqlite:///./data/local_dev.db" if os.environ.get("USE_SQLITE") else "postgresql://localhost:5432/documents_db"
    )

    # Object Storage
    STORAGE_TYPE: Literal["minio", "local"] = "minio"
    LOCAL_STORAGE_PATH: Optional[str] = None
    MINIO_ENDPOINT: str = "localhost:9000"
    MINIO_ACCESS_KEY: str = "minioadmin"
    MINIO_SECRET_KEY: str = "minioadmin"
    MINIO_BUCKET_NAME: str = "document-metadata-bucket"
    MINIO_SECURE: bool = False
    MINIO_REGION: Optional[str] = None
    STORAGE_TIMEOUT_SECONDS: float = 10.0  # per request, bounds each head during sync

    # Presigned URLs
    DOWNLOAD_URL_EXPIRE_SECONDS: int = 3600
    UPLOAD_URL_EXPIRE_SECONDS: int = 10000

    # Uploads
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10 MB

    # Redis / Celery
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: Optional[str] = None
    CELERY_RESULT_BACKEND: Optional[str] = None
    SYNC_INTERVAL_SECONDS: int = 0  # 0 disables the periodic bucket sync

    # Observability
    SENTRY_DSN: Optional[str] = None

    # Rate limiting
    RATE_LIMIT_ENABLED: bool = True
    UPLOAD_RATE_LIMIT: str = "10/minute"
    SYNC_RATE_LIMIT: str = "6/minute"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
