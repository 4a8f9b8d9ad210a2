"""Document Store Port - Domain interface for the document record store.

Single-record writes are atomic: everything done through one write session
becomes visible together on commit, or not at all.

Architecture: Hexagonal - Port interface in domain layer
"""

from abc import ABC, abstractmethod
from typing import AsyncContextManager, List, Optional
from uuid import UUID

from ....models.document import Document, DocumentType


class DocumentWriteSession(ABC):
    """Operations available inside one atomic write."""

    @abstractmethod
    async def add(self, document: Document) -> Document:
        """Insert the document and flush it (visible only to this session).

        Raises:
            RecordStoreError: If the insert fails
        """
        pass

    @abstractmethod
    async def attach_public_url(self, document: Document, url: str) -> None:
        """Set the document's public URL within this write."""
        pass

    @abstractmethod
    async def load_with_relations(self, document_id: UUID) -> Optional[Document]:
        """Load the document with owner and uploader relations populated."""
        pass


class DocumentStorePort(ABC):
    """Port interface for document record persistence and lookups."""

    @abstractmethod
    def begin(self) -> AsyncContextManager[DocumentWriteSession]:
        """Open an atomic write.

        Commits when the block exits normally, rolls back when it raises.

        Raises:
            RecordStoreError: If the commit fails
        """
        pass

    @abstractmethod
    async def find_by_id(self, document_id: UUID) -> Optional[Document]:
        pass

    @abstractmethod
    async def find_with_relations(self, document_id: UUID) -> Optional[Document]:
        pass

    @abstractmethod
    async def find_by_hash_and_owner(
        self,
        content_hash: str,
        owner_id: UUID,
        document_type: Optional[DocumentType] = None,
    ) -> List[Document]:
        """Return live (not soft-deleted) documents with this hash and owner.

        Newest first. When document_type is given, only that type matches.
        """
        pass

    @abstractmethod
    async def soft_delete(self, document_id: UUID) -> bool:
        """Mark a document deleted. Returns False if it was missing or already deleted."""
        pass
