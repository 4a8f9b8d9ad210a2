"""Document ingestion orchestration

Runs one ingestion attempt through the pipeline:

    validate -> classify -> hash/name -> reuse check -> store -> persist -> audit

Stages are strictly sequential. Expected rejections come back as failure
outcomes. Once the storage write has happened, any failure (including
cancellation) runs the storage cleanup step before the failure surfaces,
since no transaction spans object storage and the record store.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ...audit.ports import AuditAction, AuditFact, AuditOutcome, AuditSeverity, AuditSink
from ...config import IngestionPolicy
from ...errors import (
    IngestionError,
    InvariantViolation,
    OutcomeCategory,
    RecordStoreError,
    RecordValidationError,
    SignatureInspectionError,
    StorageError,
)
from ...observability.correlation_id import correlation_scope, generate_correlation_id
from .compensation import cleanup_stored_file
from .content_security import ContentSecurityClassifier
from .file_processing import FileProcessor
from .models import (
    ClassificationResult,
    FileProcessingResult,
    IngestionOutcome,
    IngestRequest,
    SecurityFlag,
)
from .persistence import PersistenceCoordinator
from .ports.document_store_port import DocumentStorePort
from .ports.object_storage_port import StorageProvider
from .reuse import ReuseResolver
from .storage_keys import build_storage_key
from .validation import UploadValidator, file_extension

logger = logging.getLogger(__name__)

REUSE_CANDIDATE_VANISHED = "Reuse candidate vanished before it could be loaded"


class DocumentIngestionService:
    """Coordinates the ingestion pipeline for single uploads.

    Holds no per-attempt state, so one instance serves concurrent attempts.

    Example:
        service = DocumentIngestionService(policy, storage, store, LoggingAuditSink())
        outcome = await service.ingest(IngestRequest(content=data, ...))
        if outcome.success:
            print(outcome.document.id, outcome.reused)
    """

    def __init__(
        self,
        policy: IngestionPolicy,
        storage: StorageProvider,
        store: DocumentStorePort,
        audit_sink: AuditSink,
        validator: Optional[UploadValidator] = None,
        classifier: Optional[ContentSecurityClassifier] = None,
        processor: Optional[FileProcessor] = None,
        reuse_resolver: Optional[ReuseResolver] = None,
        persistence: Optional[PersistenceCoordinator] = None,
    ):
        self.policy = policy
        self.storage = storage
        self.store = store
        self.audit_sink = audit_sink
        self.validator = validator or UploadValidator(policy)
        self.classifier = classifier or ContentSecurityClassifier(policy)
        self.processor = processor or FileProcessor()
        self.reuse_resolver = reuse_resolver or ReuseResolver(store, policy.reuse_enabled)
        self.persistence = persistence or PersistenceCoordinator(store, storage)

    async def ingest(
        self,
        request: IngestRequest,
        correlation_id: Optional[str] = None,
    ) -> IngestionOutcome:
        """Run one ingestion attempt.

        Returns:
            IngestionOutcome: CREATED or REUSED with a hydrated document, or
                a failure category with reasons

        Raises:
            InvariantViolation: After cleanup, when an internal contract broke
            asyncio.CancelledError: After cleanup, when the attempt was cancelled
        """
        correlation_id = correlation_id or generate_correlation_id()
        with correlation_scope(correlation_id):
            start = time.monotonic()
            outcome = await self._run(request, correlation_id)
            logger.info(
                f"Ingestion finished: category={outcome.category.value}, success={outcome.success}, "
                f"duration_ms={int((time.monotonic() - start) * 1000)}",
                extra={
                    "correlation_id": correlation_id,
                    "owner_id": request.owner_id,
                    "uploader_id": request.uploader_id,
                    "document_id": outcome.document.id if outcome.document else None,
                },
            )
            return outcome

    async def _run(self, request: IngestRequest, correlation_id: str) -> IngestionOutcome:
        # Validation
        validation = self.validator.validate(request, correlation_id)
        if not validation.is_valid and file_extension(request.original_filename) in self.policy.blocked_extensions:
            # Denylisted extensions are security rejections wherever they are caught
            flags = frozenset({SecurityFlag.DANGEROUS_EXTENSION})
            await self._emit(
                request, correlation_id, AuditAction.UPLOAD_VALIDATED, AuditOutcome.REJECTED,
                AuditSeverity.CRITICAL,
                {"reasons": validation.reasons, "security_flags": sorted(f.value for f in flags)},
            )
            return IngestionOutcome(
                success=False,
                category=OutcomeCategory.SECURITY_REJECTED,
                correlation_id=correlation_id,
                reasons=validation.reasons,
                security_flags=flags,
            )

        if not validation.is_valid:
            await self._emit(
                request, correlation_id, AuditAction.UPLOAD_VALIDATED, AuditOutcome.REJECTED,
                AuditSeverity.WARNING, {"reasons": validation.reasons},
            )
            return self._failure(OutcomeCategory.VALIDATION_FAILED, correlation_id, validation.reasons)

        await self._emit(
            request, correlation_id, AuditAction.UPLOAD_VALIDATED, AuditOutcome.SUCCESS,
            details={"size_bytes": request.size, "original_filename": request.original_filename},
        )

        # Classification
        try:
            classification = self.classifier.classify(
                request.content,
                request.declared_mime_type,
                request.original_filename,
            )
        except SignatureInspectionError as e:
            e.correlation_id = correlation_id
            await self._emit(
                request, correlation_id, AuditAction.CONTENT_CLASSIFIED, AuditOutcome.FAILED,
                AuditSeverity.ERROR, {"error": e.message},
            )
            return self._failure(e.category, correlation_id, e.reasons, error=e)

        if not classification.accepted:
            await self._emit(
                request, correlation_id, AuditAction.CONTENT_CLASSIFIED, AuditOutcome.REJECTED,
                AuditSeverity.CRITICAL,
                {
                    "security_flags": classification.flag_values(),
                    "detected_mime_type": classification.detected_mime_type,
                    "declared_mime_type": request.declared_mime_type,
                    "message": classification.message,
                },
            )
            return self._failure(
                OutcomeCategory.SECURITY_REJECTED,
                correlation_id,
                classification.reasons or [classification.message],
                classification=classification,
            )

        await self._emit(
            request, correlation_id, AuditAction.CONTENT_CLASSIFIED, AuditOutcome.SUCCESS,
            AuditSeverity.WARNING if classification.security_flags else AuditSeverity.INFO,
            {
                "security_flags": classification.flag_values(),
                "detected_mime_type": classification.detected_mime_type,
                "detected_extension": classification.detected_extension,
            },
        )

        # Hash and generated name
        processing = self.processor.process(
            request.content,
            request.original_filename,
            classification.detected_mime_type,
            correlation_id,
        )

        # Reuse check
        try:
            decision = await self.reuse_resolver.resolve(
                processing.content_hash, request.owner_id, request.document_type, correlation_id
            )
            existing = None
            if decision.can_reuse:
                existing = await self.store.find_with_relations(decision.existing_document.id)
        except RecordStoreError as e:
            e.correlation_id = correlation_id
            await self._emit(
                request, correlation_id, AuditAction.REUSE_RESOLVED, AuditOutcome.FAILED,
                AuditSeverity.ERROR, {"error": e.message},
            )
            return self._failure(e.category, correlation_id, e.reasons, error=e)

        skip_reason, candidate_found = decision.reason, decision.candidate_found
        if decision.can_reuse:
            if existing is not None and not existing.is_deleted:
                await self._emit(
                    request, correlation_id, AuditAction.REUSE_RESOLVED, AuditOutcome.SUCCESS,
                    details={"reused": True, "reason": decision.reason, "content_hash": processing.content_hash},
                    document_id=existing.id,
                )
                return IngestionOutcome(
                    success=True,
                    category=OutcomeCategory.REUSED,
                    correlation_id=correlation_id,
                    document=existing,
                    reused=True,
                    security_flags=classification.security_flags,
                )
            logger.warning(
                f"Reuse candidate disappeared before hydration: id={decision.existing_document.id}",
                extra={"correlation_id": correlation_id},
            )
            skip_reason, candidate_found = REUSE_CANDIDATE_VANISHED, False

        await self._emit(
            request, correlation_id, AuditAction.REUSE_RESOLVED, AuditOutcome.SKIPPED,
            details={
                "reused": False,
                "reason": skip_reason,
                "candidate_found": candidate_found,
                "candidate_id": decision.existing_document.id if decision.existing_document else None,
            },
        )

        # Storage write
        ingested_at = datetime.now(timezone.utc)
        storage_key = build_storage_key(
            ingested_at, request.owner_id, request.document_type, processing.stored_filename
        )
        metadata = self.build_upload_metadata(request, classification, processing, correlation_id, ingested_at)

        try:
            storage_key = await self.storage.save(
                request.content,
                storage_key,
                processing.mime_type,
                self._storage_metadata(request, processing, correlation_id),
            )
        except StorageError as e:
            e.correlation_id = correlation_id
            await self._compensate(request, storage_key, correlation_id, "storage write failed")
            await self._emit(
                request, correlation_id, AuditAction.STORAGE_WRITTEN, AuditOutcome.FAILED,
                AuditSeverity.ERROR, {"storage_key": storage_key, "backend": self.storage.name, "error": e.message},
            )
            return self._failure(e.category, correlation_id, e.reasons, error=e, classification=classification)
        except BaseException:
            await self._compensate(request, storage_key, correlation_id, "storage write interrupted")
            raise

        # Everything below runs after a successful write
        try:
            await self._emit(
                request, correlation_id, AuditAction.STORAGE_WRITTEN, AuditOutcome.SUCCESS,
                details={"storage_key": storage_key, "backend": self.storage.name, "size_bytes": processing.size_bytes},
            )
            document = await self.persistence.save_document(
                request, processing, storage_key, metadata, correlation_id
            )
        except IngestionError as e:
            e.correlation_id = correlation_id
            await self._compensate(request, storage_key, correlation_id, f"persistence failed: {e.message}")
            await self._emit(
                request, correlation_id, AuditAction.DOCUMENT_PERSISTED,
                AuditOutcome.REJECTED if isinstance(e, RecordValidationError) else AuditOutcome.FAILED,
                AuditSeverity.CRITICAL if isinstance(e, InvariantViolation) else AuditSeverity.ERROR,
                {"storage_key": storage_key, "category": e.category.value, "reasons": e.reasons},
            )
            if isinstance(e, InvariantViolation):
                raise
            return self._failure(e.category, correlation_id, e.reasons, error=e, classification=classification)
        except asyncio.CancelledError:
            logger.warning("Ingestion cancelled after storage write", extra={"correlation_id": correlation_id})
            await self._compensate(request, storage_key, correlation_id, "ingestion cancelled")
            raise
        except BaseException:
            await self._compensate(request, storage_key, correlation_id, "unexpected failure")
            raise

        await self._emit(
            request, correlation_id, AuditAction.DOCUMENT_PERSISTED, AuditOutcome.SUCCESS,
            details={"storage_key": storage_key, "has_public_url": bool(document.public_url)},
            document_id=document.id,
        )
        return IngestionOutcome(
            success=True,
            category=OutcomeCategory.CREATED,
            correlation_id=correlation_id,
            document=document,
            security_flags=classification.security_flags,
        )

    def build_upload_metadata(
        self,
        request: IngestRequest,
        classification: ClassificationResult,
        processing: FileProcessingResult,
        correlation_id: str,
        ingested_at: datetime,
    ) -> Dict[str, Any]:
        """Metadata stored with the document record."""
        mime_type = processing.mime_type
        return {
            **request.metadata,
            "correlation_id": correlation_id,
            "ingested_at": ingested_at.isoformat(),
            "declared_mime_type": request.declared_mime_type,
            "detected_mime_type": classification.detected_mime_type,
            "detected_extension": classification.detected_extension,
            "security_flags": classification.flag_values(),
            "requires_encryption": self.classifier.requires_encryption(mime_type),
            "allows_thumbnail": self.classifier.allows_thumbnail(mime_type),
        }

    @staticmethod
    def _storage_metadata(
        request: IngestRequest,
        processing: FileProcessingResult,
        correlation_id: str,
    ) -> Dict[str, str]:
        # S3 object metadata must be ASCII
        metadata = {
            "correlation_id": correlation_id,
            "owner_id": str(request.owner_id),
            "content_hash": processing.content_hash,
        }
        if request.document_type is not None:
            metadata["document_type"] = request.document_type.value
        return metadata

    async def _compensate(
        self,
        request: IngestRequest,
        storage_key: str,
        correlation_id: str,
        reason: str,
    ) -> bool:
        cleaned = await cleanup_stored_file(self.storage, storage_key, correlation_id, reason)
        await self._emit(
            request, correlation_id, AuditAction.STORAGE_CLEANUP,
            AuditOutcome.SUCCESS if cleaned else AuditOutcome.FAILED,
            AuditSeverity.WARNING if cleaned else AuditSeverity.ERROR,
            {"storage_key": storage_key, "backend": self.storage.name, "reason": reason},
        )
        return cleaned

    async def _emit(
        self,
        request: IngestRequest,
        correlation_id: str,
        action: AuditAction,
        outcome: AuditOutcome,
        severity: AuditSeverity = AuditSeverity.INFO,
        details: Optional[Dict[str, Any]] = None,
        document_id=None,
    ) -> None:
        fact = AuditFact(
            action=action,
            outcome=outcome,
            correlation_id=correlation_id,
            owner_id=request.owner_id,
            uploader_id=request.uploader_id,
            severity=severity,
            document_id=document_id,
            details=details or {},
        )
        try:
            await self.audit_sink.emit(fact)
        except Exception:
            # Audit failures never fail ingestion
            logger.exception(
                f"Audit emit failed: action={action.value}, outcome={outcome.value}",
                extra={"correlation_id": correlation_id},
            )

    @staticmethod
    def _failure(
        category: OutcomeCategory,
        correlation_id: str,
        reasons,
        error: Optional[IngestionError] = None,
        classification: Optional[ClassificationResult] = None,
    ) -> IngestionOutcome:
        return IngestionOutcome(
            success=False,
            category=category,
            correlation_id=correlation_id,
            reasons=list(reasons),
            error=error,
            security_flags=classification.security_flags if classification else frozenset(),
        )

