"""Audit sinks for ingestion facts.

DatabaseAuditSink writes immutable audit_log rows; LoggingAuditSink writes
one structured log line per fact. Both implement AuditSink.
"""

import asyncio
import json
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session, sessionmaker

from ..database import session_scope
from ..models.audit_log import AuditLog
from .ports import AuditFact, AuditSeverity, AuditSink

logger = logging.getLogger(__name__)

_LOG_LEVELS = {
    AuditSeverity.INFO: logging.INFO,
    AuditSeverity.WARNING: logging.WARNING,
    AuditSeverity.ERROR: logging.ERROR,
    AuditSeverity.CRITICAL: logging.CRITICAL,
}


def _jsonable(details: Dict[str, Any]) -> Dict[str, Any]:
    # UUIDs, datetimes and enums become strings
    return json.loads(json.dumps(details, default=str))


def log_audit_event(
    db: Session,
    correlation_id: str,
    action: str,
    severity: str,
    outcome: str,
    owner_id: Optional[UUID] = None,
    actor_id: Optional[UUID] = None,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Create an audit log entry.

    All parameters are stored as-is. This function does not validate action
    names; callers pass AuditAction values.

    Args:
        db: Database session
        correlation_id: Ingestion attempt identifier
        action: Event action (e.g., "CONTENT_CLASSIFIED")
        severity: INFO, WARNING, ERROR or CRITICAL
        outcome: SUCCESS, REJECTED, FAILED or SKIPPED
        owner_id: Document owner
        actor_id: User who performed the upload
        entity_type: Type of entity affected (e.g., "document")
        entity_id: ID of affected entity
        metadata: Additional context as JSON

    Returns:
        AuditLog: The created audit log entry
    """
    audit_entry = AuditLog(
        correlation_id=correlation_id,
        action=action,
        severity=severity,
        outcome=outcome,
        owner_id=owner_id,
        actor_id=actor_id,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    return audit_entry


class DatabaseAuditSink(AuditSink):
    """Persists each fact as an audit_log row in its own transaction."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def emit(self, fact: AuditFact) -> None:
        await asyncio.to_thread(self._write, fact)

    def _write(self, fact: AuditFact) -> None:
        with session_scope(self.session_factory) as db:
            log_audit_event(
                db=db,
                correlation_id=fact.correlation_id,
                action=fact.action.value,
                severity=fact.severity.value,
                outcome=fact.outcome.value,
                owner_id=fact.owner_id,
                actor_id=fact.uploader_id,
                entity_type="document" if fact.document_id else None,
                entity_id=fact.document_id,
                metadata=_jsonable(fact.details),
            )


class LoggingAuditSink(AuditSink):
    """Writes facts to the audit logger, at a level matching their severity."""

    def __init__(self, logger_name: str = "docingest.audit"):
        self._logger = logging.getLogger(logger_name)

    async def emit(self, fact: AuditFact) -> None:
        self._logger.log(
            _LOG_LEVELS[fact.severity],
            f"audit action={fact.action.value} outcome={fact.outcome.value} "
            f"details={json.dumps(fact.details, default=str, sort_keys=True)}",
            extra={
                "correlation_id": fact.correlation_id,
                "owner_id": fact.owner_id,
                "uploader_id": fact.uploader_id,
            },
        )
