"""Integration tests for the document ingestion pipeline

Runs DocumentIngestionService end to end against a SQLite record store and
local storage under tmp_path, covering the accepted, reused, rejected and
compensated paths.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager

import pytest

from docingest.audit import AuditAction, AuditOutcome, AuditSeverity
from docingest.config import IngestionPolicy
from docingest.domain.documents.file_processing import compute_content_hash
from docingest.domain.documents.ingestion import REUSE_CANDIDATE_VANISHED
from docingest.domain.documents.models import SecurityFlag
from docingest.errors import (
    InvariantViolation,
    OutcomeCategory,
    RecordStoreError,
    SignatureInspectionError,
    StorageError,
)
from docingest.infrastructure.repositories import SqlAlchemyDocumentStore
from docingest.models import DocumentType

from ingestion_support.documents import (
    EXE_BYTES,
    FailingAuditSink,
    JPEG_BYTES,
    PDF_BYTES,
    TEXT_BYTES,
)


class FailingWriteStore(SqlAlchemyDocumentStore):
    """Record store whose inserts fail with the configured exception."""

    def __init__(self, session_factory, error):
        super().__init__(session_factory)
        self.error = error

    @asynccontextmanager
    async def begin(self):
        async with super().begin() as session:
            async def fail(document):
                raise self.error

            session.add = fail
            yield session


class VanishingRecordStore(SqlAlchemyDocumentStore):
    @asynccontextmanager
    async def begin(self):
        async with super().begin() as session:
            async def load_nothing(document_id):
                return None

            session.load_with_relations = load_nothing
            yield session


class UnhydratableRecordStore(SqlAlchemyDocumentStore):
    async def find_with_relations(self, document_id):
        return None


class FailingSaveStorage:
    """Wraps a storage provider and fails every save."""

    def __init__(self, inner, error):
        self.inner = inner
        self.error = error
        self.deleted = []

    @property
    def name(self):
        return "failing"

    async def save(self, content, key, mime_type, metadata=None):
        raise self.error

    async def delete(self, key):
        self.deleted.append(key)
        await self.inner.delete(key)

    async def get_url(self, key, expires_in_seconds=None):
        return await self.inner.get_url(key, expires_in_seconds)


async def stored_keys(storage):
    return await storage.list("documents/")


class TestAcceptedUploads:
    """Scenario A: a clean PDF is accepted, hashed and persisted as new"""

    @pytest.mark.asyncio
    async def test_pdf_created(self, ingestion_service, make_request, local_storage, document_store, citizen):
        outcome = await ingestion_service.ingest(make_request(), correlation_id="cid-scenario-a")

        assert outcome.success is True
        assert outcome.category == OutcomeCategory.CREATED
        assert outcome.reused is False
        assert outcome.correlation_id == "cid-scenario-a"

        document = outcome.document
        assert document.content_hash == compute_content_hash(PDF_BYTES)
        assert document.owner.id == citizen.id
        assert document.uploader.name == "Atendente Silva"
        assert document.mime_type == "application/pdf"
        assert document.stored_filename.startswith("cid-scenario-a-")
        assert document.storage_key.startswith("documents/")
        assert f"/{citizen.id}/RG/" in document.storage_key
        assert document.public_url == f"http://files.test/documents/files/{document.storage_key}"

        assert await local_storage.read(document.storage_key) == PDF_BYTES
        assert await document_store.find_by_id(document.id) is not None

    @pytest.mark.asyncio
    async def test_upload_metadata_recorded(self, ingestion_service, make_request):
        outcome = await ingestion_service.ingest(
            make_request(metadata={"channel": "balcao"}), correlation_id="cid-meta"
        )

        metadata = outcome.document.metadata_json
        assert metadata["channel"] == "balcao"
        assert metadata["correlation_id"] == "cid-meta"
        assert metadata["detected_mime_type"] == "application/pdf"
        assert metadata["detected_extension"] == "pdf"
        assert metadata["security_flags"] == []
        assert metadata["requires_encryption"] is True
        assert metadata["allows_thumbnail"] is True
        assert "ingested_at" in metadata

    @pytest.mark.asyncio
    async def test_linking_ids_and_description(self, ingestion_service, make_request):
        case_id, session_id = uuid.uuid4(), uuid.uuid4()
        outcome = await ingestion_service.ingest(
            make_request(case_id=case_id, upload_session_id=session_id, description="RG frente", reusable=True)
        )

        assert outcome.document.case_id == case_id
        assert outcome.document.upload_session_id == session_id
        assert outcome.document.description == "RG frente"
        assert outcome.document.reusable is True

    @pytest.mark.asyncio
    async def test_plain_text_upload(self, ingestion_service, make_request):
        outcome = await ingestion_service.ingest(
            make_request(content=TEXT_BYTES, original_filename="endereco.txt", declared_mime_type="text/plain",
                         document_type=DocumentType.PROOF_OF_RESIDENCE)
        )

        assert outcome.category == OutcomeCategory.CREATED
        assert outcome.document.mime_type == "text/plain"

    @pytest.mark.asyncio
    async def test_one_audit_fact_per_stage(self, ingestion_service, make_request, audit_sink, citizen, uploader):
        outcome = await ingestion_service.ingest(make_request(), correlation_id="cid-audit")

        assert audit_sink.actions() == [
            AuditAction.UPLOAD_VALIDATED,
            AuditAction.CONTENT_CLASSIFIED,
            AuditAction.REUSE_RESOLVED,
            AuditAction.STORAGE_WRITTEN,
            AuditAction.DOCUMENT_PERSISTED,
        ]
        for fact in audit_sink.facts:
            assert fact.correlation_id == "cid-audit"
            assert fact.owner_id == citizen.id
            assert fact.uploader_id == uploader.id
        persisted = audit_sink.for_action(AuditAction.DOCUMENT_PERSISTED)[0]
        assert persisted.outcome == AuditOutcome.SUCCESS
        assert persisted.document_id == outcome.document.id

    @pytest.mark.asyncio
    async def test_audit_failure_does_not_fail_ingestion(self, make_service, make_request, caplog):
        service = make_service(audit_sink=FailingAuditSink())

        with caplog.at_level("ERROR"):
            outcome = await service.ingest(make_request())

        assert outcome.success is True
        assert "Audit emit failed" in caplog.text

    @pytest.mark.asyncio
    async def test_concurrent_uploads_all_persist(self, ingestion_service, make_request, local_storage):
        payloads = [PDF_BYTES + f"copia {n}".encode() for n in range(3)]

        outcomes = await asyncio.gather(
            *(ingestion_service.ingest(make_request(content=payload)) for payload in payloads)
        )

        assert [outcome.category for outcome in outcomes] == [OutcomeCategory.CREATED] * 3
        assert len({outcome.document.id for outcome in outcomes}) == 3
        assert len(await stored_keys(local_storage)) == 3


class TestReuse:
    """Scenario B and the reuse switch"""

    @pytest.mark.asyncio
    async def test_identical_upload_reused(self, ingestion_service, make_request, local_storage):
        first = await ingestion_service.ingest(make_request())
        keys_after_first = await stored_keys(local_storage)

        second = await ingestion_service.ingest(make_request(original_filename="rg-copia.pdf"))

        assert second.success is True
        assert second.category == OutcomeCategory.REUSED
        assert second.reused is True
        assert second.document.id == first.document.id
        assert second.document.owner is not None
        assert await stored_keys(local_storage) == keys_after_first

    @pytest.mark.asyncio
    async def test_reuse_audited(self, ingestion_service, make_request, audit_sink):
        first = await ingestion_service.ingest(make_request())
        audit_sink.facts.clear()

        await ingestion_service.ingest(make_request())

        assert AuditAction.STORAGE_WRITTEN not in audit_sink.actions()
        reuse = audit_sink.for_action(AuditAction.REUSE_RESOLVED)[0]
        assert reuse.outcome == AuditOutcome.SUCCESS
        assert reuse.document_id == first.document.id

    @pytest.mark.asyncio
    async def test_reuse_disabled_stores_again(self, make_service, make_request, local_storage, audit_sink):
        service = make_service(policy=IngestionPolicy(reuse_enabled=False))

        first = await service.ingest(make_request())
        audit_sink.facts.clear()
        second = await service.ingest(make_request())

        assert second.category == OutcomeCategory.CREATED
        assert second.document.id != first.document.id
        assert len(await stored_keys(local_storage)) == 2
        reuse = audit_sink.for_action(AuditAction.REUSE_RESOLVED)[0]
        assert reuse.outcome == AuditOutcome.SKIPPED
        assert reuse.details["candidate_found"] is True
        assert reuse.details["candidate_id"] == first.document.id

    @pytest.mark.asyncio
    async def test_other_type_is_not_reused(self, ingestion_service, make_request):
        first = await ingestion_service.ingest(make_request())
        second = await ingestion_service.ingest(make_request(document_type=DocumentType.CNH))

        assert second.category == OutcomeCategory.CREATED
        assert second.document.id != first.document.id

    @pytest.mark.asyncio
    async def test_soft_deleted_document_is_not_reused(self, ingestion_service, make_request, document_store):
        first = await ingestion_service.ingest(make_request())
        await document_store.soft_delete(first.document.id)

        second = await ingestion_service.ingest(make_request())

        assert second.category == OutcomeCategory.CREATED
        assert second.document.id != first.document.id

    @pytest.mark.asyncio
    async def test_vanished_candidate_is_audited_as_such(self, make_service, make_request, session_factory,
                                                         audit_sink):
        first = await make_service().ingest(make_request())
        audit_sink.facts.clear()
        service = make_service(store=UnhydratableRecordStore(session_factory))

        second = await service.ingest(make_request())

        assert second.category == OutcomeCategory.CREATED
        assert second.document.id != first.document.id
        reuse = audit_sink.for_action(AuditAction.REUSE_RESOLVED)[0]
        assert reuse.outcome == AuditOutcome.SKIPPED
        assert reuse.details["reason"] == REUSE_CANDIDATE_VANISHED
        assert reuse.details["candidate_found"] is False
        assert reuse.details["candidate_id"] == first.document.id


class TestRejections:
    """Validation and security rejections never touch storage"""

    @pytest.mark.asyncio
    async def test_executable_extension(self, ingestion_service, make_request, local_storage, audit_sink):
        """Scenario C"""
        outcome = await ingestion_service.ingest(
            make_request(content=EXE_BYTES, original_filename="setup.exe", declared_mime_type="application/pdf")
        )

        assert outcome.success is False
        assert outcome.category == OutcomeCategory.SECURITY_REJECTED
        assert SecurityFlag.DANGEROUS_EXTENSION in outcome.security_flags
        assert await stored_keys(local_storage) == []
        assert audit_sink.facts[-1].severity == AuditSeverity.CRITICAL

    @pytest.mark.asyncio
    async def test_signature_mismatch(self, ingestion_service, make_request, local_storage, audit_sink):
        """Scenario D"""
        outcome = await ingestion_service.ingest(
            make_request(original_filename="foto.jpg", declared_mime_type="image/jpeg")
        )

        assert outcome.category == OutcomeCategory.SECURITY_REJECTED
        assert outcome.security_flags == frozenset({SecurityFlag.SIGNATURE_MISMATCH})
        assert await stored_keys(local_storage) == []

        classified = audit_sink.for_action(AuditAction.CONTENT_CLASSIFIED)[0]
        assert classified.outcome == AuditOutcome.REJECTED
        assert classified.severity == AuditSeverity.CRITICAL
        assert classified.details["security_flags"] == ["signature-mismatch"]

    @pytest.mark.asyncio
    async def test_matching_jpeg_accepted(self, ingestion_service, make_request):
        outcome = await ingestion_service.ingest(
            make_request(content=JPEG_BYTES, original_filename="foto.jpg", declared_mime_type="image/jpeg")
        )
        assert outcome.category == OutcomeCategory.CREATED

    @pytest.mark.asyncio
    async def test_under_declared_size_rejected(self, ingestion_service, make_request, local_storage, policy):
        oversized = PDF_BYTES + b"0" * (policy.max_file_size_bytes + 1024)

        outcome = await ingestion_service.ingest(make_request(content=oversized, declared_size=1000))

        assert outcome.category == OutcomeCategory.VALIDATION_FAILED
        assert any("exceeds maximum size" in reason for reason in outcome.reasons)
        assert f"Declared size 1000 bytes does not match payload size {len(oversized)} bytes" in outcome.reasons
        assert await stored_keys(local_storage) == []

    @pytest.mark.asyncio
    async def test_type_ceiling_uses_payload_size(self, ingestion_service, make_request, local_storage):
        outcome = await ingestion_service.ingest(
            make_request(content=JPEG_BYTES + bytes(6 * 1024 * 1024), original_filename="foto.jpg",
                         declared_mime_type="image/jpeg")
        )

        assert outcome.category == OutcomeCategory.SECURITY_REJECTED
        assert SecurityFlag.EXCEEDS_TYPE_SIZE in outcome.security_flags
        assert await stored_keys(local_storage) == []

    @pytest.mark.asyncio
    async def test_validation_reasons_complete(self, ingestion_service, make_request, local_storage):
        outcome = await ingestion_service.ingest(make_request(content=b"", owner_id=None, document_type=None))

        assert outcome.category == OutcomeCategory.VALIDATION_FAILED
        assert "File content is empty" in outcome.reasons
        assert "owner_id is required" in outcome.reasons
        assert "document_type is required" in outcome.reasons
        assert outcome.retryable is False
        assert await stored_keys(local_storage) == []

    @pytest.mark.asyncio
    async def test_suspicious_content_quarantined(self, ingestion_service, make_request, local_storage):
        outcome = await ingestion_service.ingest(
            make_request(content=b"veja javascript:alert(1)", original_filename="nota.txt",
                         declared_mime_type="text/plain")
        )

        assert outcome.category == OutcomeCategory.SECURITY_REJECTED
        assert SecurityFlag.SUSPICIOUS in outcome.security_flags
        assert await stored_keys(local_storage) == []

    @pytest.mark.asyncio
    async def test_suspicious_content_flagged_without_quarantine(self, make_service, make_request):
        service = make_service(policy=IngestionPolicy(quarantine_suspicious=False))

        outcome = await service.ingest(
            make_request(content=b"veja javascript:alert(1)", original_filename="nota.txt",
                         declared_mime_type="text/plain")
        )

        assert outcome.category == OutcomeCategory.CREATED
        assert SecurityFlag.SUSPICIOUS in outcome.security_flags
        assert "suspicious" in outcome.document.metadata_json["security_flags"]

    @pytest.mark.asyncio
    async def test_signature_inspection_failure(self, make_service, make_request, policy):
        from docingest.domain.documents.content_security import ContentSecurityClassifier

        def broken_detector(prefix):
            raise SignatureInspectionError("magic database unavailable")

        service = make_service(classifier=ContentSecurityClassifier(policy, signature_detector=broken_detector))

        outcome = await service.ingest(make_request())

        assert outcome.category == OutcomeCategory.CLASSIFICATION_FAILED
        assert outcome.retryable is True


class TestCompensation:
    """Scenario E and the other post-write failures"""

    @pytest.mark.asyncio
    async def test_record_store_failure_cleans_up(self, make_service, make_request, session_factory,
                                                  local_storage, document_store, audit_sink):
        """Scenario E"""
        store = FailingWriteStore(session_factory, RecordStoreError("insert failed"))
        service = make_service(store=store)
        request = make_request()

        outcome = await service.ingest(request)

        assert outcome.success is False
        assert outcome.category == OutcomeCategory.PERSISTENCE_FAILED
        assert outcome.retryable is True
        assert isinstance(outcome.error, RecordStoreError)
        assert await stored_keys(local_storage) == []
        assert await document_store.find_by_hash_and_owner(
            compute_content_hash(PDF_BYTES), request.owner_id
        ) == []

        cleanup = audit_sink.for_action(AuditAction.STORAGE_CLEANUP)[0]
        assert cleanup.outcome == AuditOutcome.SUCCESS
        persisted = audit_sink.for_action(AuditAction.DOCUMENT_PERSISTED)[0]
        assert persisted.outcome == AuditOutcome.FAILED

        with pytest.raises(RecordStoreError):
            outcome.raise_for_failure()

    @pytest.mark.asyncio
    async def test_invariant_violation_cleans_up_and_raises(self, make_service, make_request, session_factory,
                                                           local_storage, document_store):
        service = make_service(store=VanishingRecordStore(session_factory))
        request = make_request()

        with pytest.raises(InvariantViolation):
            await service.ingest(request)

        assert await stored_keys(local_storage) == []
        assert await document_store.find_by_hash_and_owner(
            compute_content_hash(PDF_BYTES), request.owner_id
        ) == []

    @pytest.mark.asyncio
    async def test_cancellation_cleans_up(self, make_service, make_request, session_factory, local_storage):
        service = make_service(store=FailingWriteStore(session_factory, asyncio.CancelledError()))

        with pytest.raises(asyncio.CancelledError):
            await service.ingest(make_request())

        assert await stored_keys(local_storage) == []

    @pytest.mark.asyncio
    async def test_unknown_owner_cleans_up(self, ingestion_service, make_request, local_storage):
        outcome = await ingestion_service.ingest(make_request(owner_id=uuid.uuid4()))

        assert outcome.category == OutcomeCategory.PERSISTENCE_FAILED
        assert await stored_keys(local_storage) == []

    @pytest.mark.asyncio
    async def test_storage_failure(self, make_service, make_request, local_storage, audit_sink):
        storage = FailingSaveStorage(local_storage, StorageError("bucket unavailable"))
        service = make_service(storage=storage)

        outcome = await service.ingest(make_request())

        assert outcome.category == OutcomeCategory.STORAGE_FAILED
        assert outcome.retryable is True
        assert len(storage.deleted) == 1
        written = audit_sink.for_action(AuditAction.STORAGE_WRITTEN)[0]
        assert written.outcome == AuditOutcome.FAILED
        assert AuditAction.DOCUMENT_PERSISTED not in audit_sink.actions()
