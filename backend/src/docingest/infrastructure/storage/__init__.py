"""Storage adapters for the StorageProvider port."""

from .factory import (
    StorageProviderRegistry,
    build_local_storage,
    build_s3_storage,
    create_storage_provider,
    default_registry,
)
from .local_storage_adapter import LocalStorageAdapter
from .s3_storage_adapter import S3StorageAdapter
from .storage_config import StorageConfig, load_storage_config, validate_storage_config

__all__ = [
    "LocalStorageAdapter",
    "S3StorageAdapter",
    "StorageConfig",
    "StorageProviderRegistry",
    "build_local_storage",
    "build_s3_storage",
    "create_storage_provider",
    "default_registry",
    "load_storage_config",
    "validate_storage_config",
]
