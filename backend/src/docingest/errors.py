"""Error taxonomy for the document ingestion pipeline.

Every failure surfaced to a caller maps to one OutcomeCategory so it can be
handled without string matching. Expected stage rejections travel as result
objects; these exceptions cover the cases that propagate.
"""

from enum import Enum
from typing import Iterable, List, Optional


class OutcomeCategory(str, Enum):
    """Machine-distinguishable outcome of one ingestion attempt"""
    CREATED = "CREATED"
    REUSED = "REUSED"
    VALIDATION_FAILED = "VALIDATION_FAILED"
    SECURITY_REJECTED = "SECURITY_REJECTED"
    CLASSIFICATION_FAILED = "CLASSIFICATION_FAILED"
    STORAGE_FAILED = "STORAGE_FAILED"
    PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
    INVARIANT_VIOLATION = "INVARIANT_VIOLATION"


class IngestionError(Exception):
    """Base exception for ingestion failures."""

    category: OutcomeCategory = OutcomeCategory.PERSISTENCE_FAILED
    retryable: bool = False

    def __init__(
        self,
        message: str,
        reasons: Optional[Iterable[str]] = None,
        correlation_id: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        self.reasons: List[str] = list(reasons) if reasons else [message]
        self.correlation_id = correlation_id


class InputValidationError(IngestionError):
    """Caller-fixable input problem. Never retried automatically."""
    category = OutcomeCategory.VALIDATION_FAILED


class RecordValidationError(InputValidationError):
    """Document record failed field/shape checks before being written."""


class SecurityRejection(IngestionError):
    """Payload or declared type is unacceptable."""
    category = OutcomeCategory.SECURITY_REJECTED

    def __init__(self, message: str, flags: Iterable[str] = (), **kwargs):
        super().__init__(message, **kwargs)
        self.flags = frozenset(flags)


class TransientInfrastructureError(IngestionError):
    """Storage or record-store I/O failure. The whole attempt may be retried."""
    retryable = True


class StorageError(TransientInfrastructureError):
    """Storage backend operation failed."""
    category = OutcomeCategory.STORAGE_FAILED


class RecordStoreError(TransientInfrastructureError):
    """Record store read/write failed."""
    category = OutcomeCategory.PERSISTENCE_FAILED


class SignatureInspectionError(TransientInfrastructureError):
    """Binary signature inspection could not run."""
    category = OutcomeCategory.CLASSIFICATION_FAILED


class InvariantViolation(IngestionError):
    """An internal contract was broken. Always a hard failure."""
    category = OutcomeCategory.INVARIANT_VIOLATION


class ConfigurationError(Exception):
    """Deployment configuration is unusable (raised at startup)."""
