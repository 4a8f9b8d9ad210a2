"""Ports (interfaces) consumed by the document ingestion domain"""

from .document_store_port import DocumentStorePort, DocumentWriteSession
from .object_storage_port import StorageProvider

__all__ = ["DocumentStorePort", "DocumentWriteSession", "StorageProvider"]
