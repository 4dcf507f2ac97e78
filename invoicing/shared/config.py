"""Shared configuration management for the invoice capture service.

Based on Pydantic Settings v2:
https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support.

    All settings can be overridden via environment variables with the prefix 'APP_'.
    Example: APP_LOG_LEVEL=debug
    """

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    environment: Literal["development", "staging", "production"] = Field(
        default="development",
        description="Deployment environment",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Service configuration
    service_name: str = Field(
        default="invoice-capture-service",
        description="Service identifier for metrics and logs",
    )
    service_version: str = Field(
        default="0.1.0",
        description="Service version",
    )

    # OCR configuration
    ocr_language: str = Field(
        default="eng",
        description="Tesseract language pack used for recognition",
    )
    max_upload_bytes: int = Field(
        default=10 * 1024 * 1024,
        description="Largest accepted invoice image upload in bytes",
        gt=0,
    )

    # Extraction provider configuration
    extraction_provider: Literal["rules"] = Field(
        default="rules",
        description="Extraction provider: rules (label pattern matching)",
    )

    # Storage configuration (S3-compatible object storage)
    storage_enabled: bool = Field(
        default=False,
        description="Persist invoice records in S3-compatible storage (MinIO)",
    )
    storage_endpoint: str = Field(
        default="localhost:9000",
        description="S3-compatible storage endpoint (host:port)",
    )
    storage_access_key: str = Field(
        default="",
        description="Storage access key (use env var APP_STORAGE_ACCESS_KEY)",
    )
    storage_secret_key: str = Field(
        default="",
        description="Storage secret key (use env var APP_STORAGE_SECRET_KEY)",
    )
    storage_bucket: str = Field(
        default="invoices",
        description="Bucket holding invoice and supplier records",
    )
    storage_secure: bool = Field(
        default=False,
        description="Use HTTPS for storage connections",
    )
    storage_retry_attempts: int = Field(
        default=3,
        description="Attempts per storage call before an S3 error is reported",
        ge=1,
    )
    storage_retry_wait: float = Field(
        default=1.0,
        description="Initial backoff in seconds between storage retries",
        ge=0,
    )


def get_settings() -> Settings:
    """Factory function to get settings instance.

    Returns:
        Configured Settings instance
    """
    return Settings()
