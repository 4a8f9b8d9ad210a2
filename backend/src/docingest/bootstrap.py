"""Wiring for the document ingestion service.

Backend choice, policy and record store are decided once here, at startup,
never per call.
"""

import logging
from typing import Optional

from sqlalchemy.orm import sessionmaker

from .audit import AuditSink, DatabaseAuditSink
from .config import IngestionPolicy, Settings, get_settings
from .database import create_db_engine, create_session_factory, init_db
from .domain.documents.ingestion import DocumentIngestionService
from .infrastructure.repositories import SqlAlchemyDocumentStore
from .infrastructure.storage import StorageProviderRegistry, create_storage_provider
from .observability import configure_logging

logger = logging.getLogger(__name__)


def build_ingestion_service(
    settings: Optional[Settings] = None,
    session_factory: Optional[sessionmaker] = None,
    audit_sink: Optional[AuditSink] = None,
    registry: Optional[StorageProviderRegistry] = None,
    setup_logging: bool = False,
) -> DocumentIngestionService:
    """Build a ready-to-use ingestion service.

    Args:
        settings: Application settings (defaults to get_settings())
        session_factory: Session factory for the record store. When omitted,
            an engine is created from DATABASE_URL and tables are created.
        audit_sink: Audit sink (defaults to DatabaseAuditSink on the same database)
        registry: Storage backend registry (defaults to local + s3)
        setup_logging: Install the stdout log handler from LOG_LEVEL and LOG_JSON

    Raises:
        ConfigurationError: If the configured storage backend is unusable
    """
    settings = settings or get_settings()
    if setup_logging:
        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)

    if session_factory is None:
        engine = create_db_engine(settings.DATABASE_URL)
        init_db(engine)
        session_factory = create_session_factory(engine)

    storage = create_storage_provider(settings, registry)
    store = SqlAlchemyDocumentStore(session_factory)
    policy = IngestionPolicy.from_settings(settings)

    service = DocumentIngestionService(
        policy=policy,
        storage=storage,
        store=store,
        audit_sink=audit_sink or DatabaseAuditSink(session_factory),
    )

    logger.info(
        f"Ingestion service ready: backend={storage.name}, reuse_enabled={policy.reuse_enabled}, "
        f"quarantine_suspicious={policy.quarantine_suspicious}, content_scan={policy.content_scan_enabled}"
    )
    return service
