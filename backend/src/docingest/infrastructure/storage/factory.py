"""
Storage Provider Registry - Registration and resolution of storage backends

Maps backend names ("local", "s3") to builder callables that turn Settings
into a StorageProvider, so the configured backend is resolved at startup
without the domain knowing about concrete adapters.
"""

import logging
from typing import Callable, Dict, List, Optional

from ...config import Settings
from ...domain.documents.ports.object_storage_port import StorageProvider
from ...domain.documents.validation import check_storage_configuration
from .local_storage_adapter import LocalStorageAdapter
from .s3_storage_adapter import S3StorageAdapter
from .storage_config import load_storage_config

logger = logging.getLogger(__name__)

StorageBuilder = Callable[[Settings], StorageProvider]


class StorageProviderRegistry:
    """
    Registry of storage backend builders.

    Usage:
        registry = StorageProviderRegistry()
        registry.register("local", build_local_storage)
        storage = registry.create("local", settings)
    """

    def __init__(self):
        self._builders: Dict[str, StorageBuilder] = {}

    def register(self, name: str, builder: StorageBuilder) -> None:
        """
        Register a storage backend builder.

        Raises:
            ValueError: If name is empty
            RuntimeError: If name is already registered
        """
        if not name or not name.strip():
            raise ValueError("Storage backend name cannot be empty")

        if name in self._builders:
            raise RuntimeError(
                f"Storage backend '{name}' is already registered. "
                f"Use unregister() first if you need to replace it."
            )

        self._builders[name] = builder

    def unregister(self, name: str) -> None:
        self._builders.pop(name, None)

    def registered_backends(self) -> List[str]:
        return sorted(self._builders.keys())

    def create(self, name: str, settings: Settings) -> StorageProvider:
        """
        Build the named storage provider.

        Raises:
            ConfigurationError: If the backend is not registered or its
                configuration is invalid
        """
        check_storage_configuration(name, self.registered_backends())
        provider = self._builders[name](settings)
        logger.info(f"Storage provider created: backend={provider.name}")
        return provider


def build_local_storage(settings: Settings) -> StorageProvider:
    return LocalStorageAdapter(
        base_dir=settings.UPLOADS_DIR,
        public_base_url=settings.PUBLIC_BASE_URL,
    )


def build_s3_storage(settings: Settings) -> StorageProvider:
    config = load_storage_config(settings)
    return S3StorageAdapter(
        endpoint_url=config.endpoint_url,
        access_key=config.access_key,
        secret_key=config.secret_key,
        bucket_name=config.bucket_name,
        region=config.region,
        default_url_expiry_seconds=config.url_expiry_seconds,
    )


def default_registry() -> StorageProviderRegistry:
    """Registry with the built-in local and s3 backends."""
    registry = StorageProviderRegistry()
    registry.register("local", build_local_storage)
    registry.register("s3", build_s3_storage)
    return registry


def create_storage_provider(
    settings: Settings,
    registry: Optional[StorageProviderRegistry] = None,
) -> StorageProvider:
    """Create the storage provider selected by STORAGE_BACKEND."""
    registry = registry or default_registry()
    return registry.create(settings.STORAGE_BACKEND, settings)
