"""Storage configuration for S3-compatible object storage.

Derived from application Settings. Supports both MinIO (development) and
AWS S3 (production) with the same interface.
"""

from dataclasses import dataclass
from typing import Optional

from ...config import Settings
from ...errors import ConfigurationError


@dataclass
class StorageConfig:
    """Configuration for S3-compatible object storage.

    Attributes:
        endpoint_url: S3 endpoint URL (e.g., 'http://localhost:9000' for MinIO,
                      None for AWS S3 which uses default regional endpoints)
        access_key: S3 access key ID
        secret_key: S3 secret access key
        bucket_name: S3 bucket name for storing documents
        region: AWS region (default: 'us-east-1')
        url_expiry_seconds: Lifetime of presigned download URLs
    """
    endpoint_url: Optional[str]
    access_key: str
    secret_key: str
    bucket_name: str
    region: str = "us-east-1"
    url_expiry_seconds: int = 3600


def load_storage_config(settings: Settings) -> StorageConfig:
    """Build and validate the S3 configuration from settings.

    Example:
        # For MinIO (development):
        S3_ENDPOINT_URL=http://localhost:9000
        S3_ACCESS_KEY_ID=minioadmin
        S3_SECRET_ACCESS_KEY=minioadmin

        # For AWS S3 (production):
        S3_ENDPOINT_URL=
        S3_REGION=eu-central-1

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    config = StorageConfig(
        endpoint_url=settings.S3_ENDPOINT_URL or None,
        access_key=settings.S3_ACCESS_KEY_ID,
        secret_key=settings.S3_SECRET_ACCESS_KEY,
        bucket_name=settings.S3_BUCKET_NAME,
        region=settings.S3_REGION,
        url_expiry_seconds=settings.PRESIGNED_URL_EXPIRY_SECONDS,
    )
    validate_storage_config(config)
    return config


def validate_storage_config(config: StorageConfig) -> None:
    """Validate storage configuration.

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if not config.access_key:
        raise ConfigurationError("Storage access_key is required")

    if not config.secret_key:
        raise ConfigurationError("Storage secret_key is required")

    if not config.bucket_name:
        raise ConfigurationError("Storage bucket_name is required")

    if config.url_expiry_seconds <= 0:
        raise ConfigurationError("Presigned URL expiry must be positive")

    if config.endpoint_url:
        # MinIO configuration
        if not config.endpoint_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"Invalid endpoint_url: {config.endpoint_url}. "
                "Must start with http:// or https://"
            )
    elif not config.region:
        raise ConfigurationError("AWS region is required when S3_ENDPOINT_URL is not set")
