"""Audit Sink Port - interface consumed by the ingestion pipeline.

The pipeline only emits facts; how they are stored, forwarded or indexed is
owned by the sink implementation.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional
from uuid import UUID


class AuditAction(str, Enum):
    """One action per pipeline stage"""
    UPLOAD_VALIDATED = "UPLOAD_VALIDATED"
    CONTENT_CLASSIFIED = "CONTENT_CLASSIFIED"
    REUSE_RESOLVED = "REUSE_RESOLVED"
    STORAGE_WRITTEN = "STORAGE_WRITTEN"
    STORAGE_CLEANUP = "STORAGE_CLEANUP"
    DOCUMENT_PERSISTED = "DOCUMENT_PERSISTED"


class AuditSeverity(str, Enum):
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class AuditOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    REJECTED = "REJECTED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


@dataclass
class AuditFact:
    """Structured fact describing the outcome of one pipeline stage.

    Attributes:
        action: Stage that produced the fact
        outcome: Stage outcome
        correlation_id: Ingestion attempt the fact belongs to
        owner_id: Document owner (None when the request omitted it)
        uploader_id: User that submitted the file
        severity: INFO for success, higher for failures and security rejections
        details: Stage-specific context (flags, keys, reasons, timings)
    """
    action: AuditAction
    outcome: AuditOutcome
    correlation_id: str
    owner_id: Optional[UUID] = None
    uploader_id: Optional[UUID] = None
    severity: AuditSeverity = AuditSeverity.INFO
    document_id: Optional[UUID] = None
    details: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class AuditSink(ABC):
    """Receives audit facts from every ingestion stage."""

    @abstractmethod
    async def emit(self, fact: AuditFact) -> None:
        """Record one fact.

        Raises:
            Exception: Implementation-specific; the pipeline logs emit
                failures and carries on.
        """
        pass
