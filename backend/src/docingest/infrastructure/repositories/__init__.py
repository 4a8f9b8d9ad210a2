"""Record store implementations."""

from .document_store import SqlAlchemyDocumentStore, SqlAlchemyWriteSession

__all__ = ["SqlAlchemyDocumentStore", "SqlAlchemyWriteSession"]
