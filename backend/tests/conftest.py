"""Pytest fixtures for document ingestion testing.

Provides reusable test fixtures for:
- A throwaway SQLite record store per test
- A local storage root under tmp_path
- A recording audit sink
- Seeded citizen (owner) and user (uploader) rows
- A fully wired ingestion service with a deterministic signature detector

Usage:
    @pytest.mark.asyncio
    async def test_upload(ingestion_service, make_request):
        outcome = await ingestion_service.ingest(make_request())
        assert outcome.success
"""

import sys
from pathlib import Path

import pytest

# Make the docingest package importable without installation
backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

from docingest.config import IngestionPolicy
from docingest.database import create_db_engine, create_session_factory, init_db, session_scope
from docingest.domain.documents.content_security import ContentSecurityClassifier
from docingest.domain.documents.ingestion import DocumentIngestionService
from docingest.domain.documents.models import IngestRequest
from docingest.infrastructure.repositories import SqlAlchemyDocumentStore
from docingest.infrastructure.storage import LocalStorageAdapter
from docingest.models import Citizen, DocumentType, User

from ingestion_support.documents import PDF_BYTES, RecordingAuditSink, fake_signature_detector


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """Create a fresh SQLite database for each test.

    A file database (not :memory:) so every session sees the same data.
    """
    engine = create_db_engine(f"sqlite:///{tmp_path / 'docingest-test.db'}")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest.fixture(scope="function")
def document_store(session_factory) -> SqlAlchemyDocumentStore:
    return SqlAlchemyDocumentStore(session_factory)


@pytest.fixture(scope="function")
def local_storage(tmp_path) -> LocalStorageAdapter:
    return LocalStorageAdapter(
        base_dir=str(tmp_path / "uploads"),
        public_base_url="http://files.test",
    )


@pytest.fixture(scope="function")
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def policy() -> IngestionPolicy:
    return IngestionPolicy()


@pytest.fixture
def classifier(policy) -> ContentSecurityClassifier:
    return ContentSecurityClassifier(policy, signature_detector=fake_signature_detector)


@pytest.fixture(scope="function")
def citizen(session_factory) -> Citizen:
    """Create a test citizen (document owner)."""
    with session_scope(session_factory) as session:
        owner = Citizen(full_name="Maria Souza", tax_id="123.456.789-09")
        session.add(owner)
    return owner


@pytest.fixture(scope="function")
def uploader(session_factory) -> User:
    """Create a test staff user (uploader)."""
    with session_scope(session_factory) as session:
        user = User(name="Atendente Silva", email="atendente@prefeitura.test")
        session.add(user)
    return user


@pytest.fixture
def make_request(citizen, uploader):
    """Factory for ingestion requests with sensible defaults."""

    def _make(**overrides) -> IngestRequest:
        content = overrides.pop("content", PDF_BYTES)
        values = dict(
            content=content,
            original_filename="rg-frente.pdf",
            declared_mime_type="application/pdf",
            declared_size=len(content),
            owner_id=citizen.id,
            uploader_id=uploader.id,
            document_type=DocumentType.RG,
        )
        values.update(overrides)
        return IngestRequest(**values)

    return _make


@pytest.fixture
def make_service(policy, local_storage, document_store, audit_sink):
    """Factory for ingestion services; override any collaborator by keyword."""

    def _make(**overrides) -> DocumentIngestionService:
        service_policy = overrides.pop("policy", policy)
        values = dict(
            policy=service_policy,
            storage=local_storage,
            store=document_store,
            audit_sink=audit_sink,
            classifier=ContentSecurityClassifier(service_policy, signature_detector=fake_signature_detector),
        )
        values.update(overrides)
        return DocumentIngestionService(**values)

    return _make


@pytest.fixture
def ingestion_service(make_service) -> DocumentIngestionService:
    return make_service()
