"""SQLAlchemy implementation of DocumentStorePort.

Each write session wraps one SQLAlchemy session: commit on normal exit,
rollback on exception. Library errors are translated into RecordStoreError.

Sessions are synchronous, so every database round trip runs in a worker
thread (asyncio.to_thread). A session is used by one thread at a time.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncIterator, List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from ...database import session_scope
from ...domain.documents.ports.document_store_port import (
    DocumentStorePort,
    DocumentWriteSession,
)
from ...errors import RecordStoreError
from ...models.document import Document, DocumentType

logger = logging.getLogger(__name__)


def _with_relations_query(document_id: UUID):
    return (
        select(Document)
        .options(joinedload(Document.owner), joinedload(Document.uploader))
        .where(Document.id == document_id)
        .execution_options(populate_existing=True)
    )


class SqlAlchemyWriteSession(DocumentWriteSession):
    def __init__(self, session: Session):
        self.session = session

    async def add(self, document: Document) -> Document:
        def _insert():
            self.session.add(document)
            self.session.flush()

        try:
            await asyncio.to_thread(_insert)
        except SQLAlchemyError as e:
            logger.error(f"Document insert failed: id={document.id}, error={e}")
            raise RecordStoreError(f"Failed to save document: {e}") from e
        return document

    async def attach_public_url(self, document: Document, url: str) -> None:
        document.public_url = url
        try:
            await asyncio.to_thread(self.session.flush)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to update public URL: {e}") from e

    async def load_with_relations(self, document_id: UUID) -> Optional[Document]:
        def _load():
            return self.session.execute(_with_relations_query(document_id)).unique().scalar_one_or_none()

        try:
            return await asyncio.to_thread(_load)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to load document relations: {e}") from e


class SqlAlchemyDocumentStore(DocumentStorePort):
    """Record store backed by a SQLAlchemy session factory.

    Example:
        engine = create_db_engine(settings.DATABASE_URL)
        store = SqlAlchemyDocumentStore(create_session_factory(engine))

        async with store.begin() as write:
            await write.add(document)
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[DocumentWriteSession]:
        session = self.session_factory()
        try:
            yield SqlAlchemyWriteSession(session)
            try:
                await asyncio.to_thread(session.commit)
            except SQLAlchemyError as e:
                logger.error(f"Document commit failed: {e}")
                raise RecordStoreError(f"Failed to commit document: {e}") from e
        except Exception:
            await asyncio.to_thread(session.rollback)
            raise
        finally:
            # Synchronous: also runs while a cancellation is propagating
            session.close()

    async def find_by_id(self, document_id: UUID) -> Optional[Document]:
        def _get():
            with session_scope(self.session_factory) as session:
                return session.get(Document, document_id)

        try:
            return await asyncio.to_thread(_get)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to load document {document_id}: {e}") from e

    async def find_with_relations(self, document_id: UUID) -> Optional[Document]:
        def _get():
            with session_scope(self.session_factory) as session:
                return session.execute(_with_relations_query(document_id)).unique().scalar_one_or_none()

        try:
            return await asyncio.to_thread(_get)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to load document {document_id}: {e}") from e

    async def find_by_hash_and_owner(
        self,
        content_hash: str,
        owner_id: UUID,
        document_type: Optional[DocumentType] = None,
    ) -> List[Document]:
        query = (
            select(Document)
            .where(
                Document.content_hash == content_hash,
                Document.owner_id == owner_id,
                Document.deleted_at.is_(None),
            )
            .order_by(Document.created_at.desc())
        )
        if document_type is not None:
            query = query.where(Document.document_type == document_type)

        def _query():
            with session_scope(self.session_factory) as session:
                return list(session.execute(query).scalars().all())

        try:
            return await asyncio.to_thread(_query)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to query documents by hash: {e}") from e

    async def soft_delete(self, document_id: UUID) -> bool:
        def _mark_deleted() -> bool:
            with session_scope(self.session_factory) as session:
                document = session.get(Document, document_id)
                if document is None or document.deleted_at is not None:
                    return False
                document.deleted_at = datetime.now(timezone.utc)
                return True

        try:
            deleted = await asyncio.to_thread(_mark_deleted)
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Failed to soft-delete document {document_id}: {e}") from e

        if deleted:
            logger.info(f"Document soft-deleted: id={document_id}", extra={"document_id": document_id})
        return deleted
