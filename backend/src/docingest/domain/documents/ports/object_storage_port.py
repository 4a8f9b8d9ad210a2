"""Object Storage Port - Domain interface for pluggable document storage.

This port defines the contract every storage backend (local disk, S3, MinIO)
must satisfy. Backend choice is made once at wiring time; the pipeline only
talks to this interface.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class StorageProvider(ABC):
    """Port interface for document storage operations.

    Key Design Principles:
    - Keys are opaque, slash-separated paths produced by build_storage_key()
    - delete() is idempotent (deleting a missing key is a silent no-op)
    - No internal retries; transient failures surface as StorageError
    - Every operation is a suspension point

    Example Usage:
        storage = LocalStorageAdapter(base_dir="/var/uploads", public_base_url="https://...")

        key = await storage.save(content, "documents/2025/01/31/<owner>/RG/<name>.pdf",
                                 "application/pdf", {"correlation_id": "..."})
        data = await storage.read(key)
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name used in logs and audit facts (e.g. "local", "s3")."""
        pass

    @abstractmethod
    async def save(
        self,
        content: bytes,
        key: str,
        mime_type: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Store bytes under the given key.

        Args:
            content: File bytes
            key: Target storage key
            mime_type: MIME type recorded with the object
            metadata: Optional string-convertible metadata stored alongside

        Returns:
            str: Final storage key (backends may normalize the requested key)

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def read(self, key: str) -> bytes:
        """Read the full content of a stored object.

        Raises:
            FileNotFoundError: If the key doesn't exist
            StorageError: If retrieval fails
        """
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Delete an object. Deleting a missing key is a silent no-op.

        Raises:
            StorageError: If deletion fails
        """
        pass

    @abstractmethod
    async def exists(self, key: str) -> bool:
        """Check whether an object exists.

        Raises:
            StorageError: If the backend cannot answer
        """
        pass

    @abstractmethod
    async def list(self, prefix: str = "", max_keys: int = 1000) -> List[str]:
        """List up to max_keys keys starting with prefix, in key order.

        Raises:
            StorageError: If listing fails
        """
        pass

    @abstractmethod
    async def copy(self, source_key: str, destination_key: str) -> str:
        """Copy an object to a new key.

        Returns:
            str: Destination key

        Raises:
            FileNotFoundError: If the source doesn't exist
            StorageError: If the copy fails
        """
        pass

    @abstractmethod
    async def get_url(self, key: str, expires_in_seconds: Optional[int] = None) -> str:
        """Return a URI from which the object can be downloaded.

        Args:
            key: Storage key
            expires_in_seconds: Expiry for signed URLs (backend default if None)

        Raises:
            FileNotFoundError: If the key doesn't exist
            StorageError: If URL generation fails
        """
        pass
