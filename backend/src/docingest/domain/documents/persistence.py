"""Document persistence coordination

Builds, validates and atomically saves the document record, best-effort
attaches a public URL and returns the record hydrated with owner and
uploader relations. Everything runs inside one write session: if any step
raises, nothing becomes visible.
"""

import logging
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ...errors import InvariantViolation, RecordStoreError, RecordValidationError
from ...models.document import DESCRIPTION_MAX_LENGTH, Document
from .file_processing import is_valid_content_hash
from .models import FileProcessingResult, IngestRequest
from .ports.document_store_port import DocumentStorePort
from .ports.object_storage_port import StorageProvider

logger = logging.getLogger(__name__)

MIME_TYPE_PATTERN = re.compile(r"^[\w.+-]+/[\w.+-]+$")


def validate_document_data(document: Document) -> List[str]:
    """Return every field/shape problem of a document about to be written.

    Empty list means valid.
    """
    errors: List[str] = []

    if not document.owner_id:
        errors.append("owner_id is required")
    if not document.uploader_id:
        errors.append("uploader_id is required")
    if not document.document_type:
        errors.append("document_type is required")
    if not document.stored_filename:
        errors.append("stored_filename is required")
    if not document.original_filename:
        errors.append("original_filename is required")
    if not document.storage_key:
        errors.append("storage_key is required")
    if not document.content_hash:
        errors.append("content_hash is required")
    elif not is_valid_content_hash(document.content_hash):
        errors.append("content_hash must be a SHA-256 hex digest")
    if not isinstance(document.size_bytes, int) or document.size_bytes <= 0:
        errors.append("size_bytes must be greater than zero")
    if not document.mime_type or not MIME_TYPE_PATTERN.match(document.mime_type):
        errors.append("mime_type must have the form type/subtype")
    if document.description and len(document.description) > DESCRIPTION_MAX_LENGTH:
        errors.append(f"description exceeds {DESCRIPTION_MAX_LENGTH} characters")

    return errors


class PersistenceCoordinator:
    """Persists one document record as a single atomic unit.

    Args:
        store: Record store
        storage: Storage provider used to resolve the public URL
    """

    def __init__(self, store: DocumentStorePort, storage: StorageProvider):
        self.store = store
        self.storage = storage

    def build_document(
        self,
        request: IngestRequest,
        processing: FileProcessingResult,
        storage_key: str,
        metadata: Dict[str, Any],
    ) -> Document:
        return Document(
            id=uuid.uuid4(),
            owner_id=request.owner_id,
            case_id=request.case_id,
            pending_item_id=request.pending_item_id,
            upload_session_id=request.upload_session_id,
            document_type=request.document_type,
            uploader_id=request.uploader_id,
            stored_filename=processing.stored_filename,
            original_filename=processing.original_filename,
            storage_key=storage_key,
            size_bytes=processing.size_bytes,
            mime_type=processing.mime_type,
            content_hash=processing.content_hash,
            description=request.description,
            reusable=request.reusable,
            metadata_json=metadata,
            created_at=datetime.now(timezone.utc),
        )

    async def save_document(
        self,
        request: IngestRequest,
        processing: FileProcessingResult,
        storage_key: str,
        metadata: Dict[str, Any],
        correlation_id: str,
    ) -> Document:
        """Build, validate, persist and hydrate the document record.

        Steps:
        1. Build the record
        2. Validate fields and shape (before any write)
        3. Persist
        4. Attach a public URL (best-effort; failure is a warning)
        5. Load owner/uploader relations

        Returns:
            Document: committed record with relations loaded

        Raises:
            RecordValidationError: If the record fails validation (nothing written)
            RecordStoreError: If the write or commit fails (nothing visible)
            InvariantViolation: If the written record cannot be read back
        """
        start = time.monotonic()
        document = self.build_document(request, processing, storage_key, metadata)

        errors = validate_document_data(document)
        if errors:
            logger.warning(
                f"Document data is invalid: errors={errors}",
                extra={"correlation_id": correlation_id, "storage_key": storage_key},
            )
            raise RecordValidationError(
                "Document data is invalid",
                reasons=errors,
                correlation_id=correlation_id,
            )

        async with self.store.begin() as session:
            await session.add(document)

            url = await self._resolve_public_url(document, correlation_id)
            if url:
                await session.attach_public_url(document, url)

            hydrated = await session.load_with_relations(document.id)
            if hydrated is None:
                raise InvariantViolation(
                    f"Document not found after save: {document.id}",
                    correlation_id=correlation_id,
                )
            if hydrated.owner is None or hydrated.uploader is None:
                raise RecordStoreError(
                    f"Owner or uploader missing for document {document.id}",
                    correlation_id=correlation_id,
                )

        logger.info(
            f"Document persisted: id={hydrated.id}, has_public_url={bool(hydrated.public_url)}, "
            f"duration_ms={int((time.monotonic() - start) * 1000)}",
            extra={
                "correlation_id": correlation_id,
                "document_id": hydrated.id,
                "owner_id": hydrated.owner_id,
                "storage_key": storage_key,
            },
        )
        return hydrated

    async def _resolve_public_url(self, document: Document, correlation_id: str) -> Optional[str]:
        try:
            return await self.storage.get_url(document.storage_key)
        except Exception as e:
            logger.warning(
                f"Could not generate public URL, document saved without it: {e}",
                extra={"correlation_id": correlation_id, "document_id": document.id},
            )
            return None
