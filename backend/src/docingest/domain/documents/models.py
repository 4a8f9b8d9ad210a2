"""Domain models for the document ingestion pipeline"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional
from uuid import UUID

from ...errors import (
    IngestionError,
    InputValidationError,
    InvariantViolation,
    OutcomeCategory,
    RecordStoreError,
    SecurityRejection,
    SignatureInspectionError,
    StorageError,
)
from ...models.document import Document, DocumentType


class SecurityFlag(str, Enum):
    """Flags raised by the content security classifier"""
    DANGEROUS_EXTENSION = "dangerous-extension"
    BLOCKED_MIME_TYPE = "blocked-mime-type"
    UNVERIFIABLE_SIGNATURE = "unverifiable-signature"
    DISALLOWED_TYPE = "disallowed-type"
    SIGNATURE_MISMATCH = "signature-mismatch"
    EXCEEDS_TYPE_SIZE = "exceeds-type-size"
    SUSPICIOUS = "suspicious"
    EMBEDDED_CONTENT = "embedded-content"
    OBFUSCATED_CONTENT = "obfuscated-content"


@dataclass
class IngestRequest:
    """Everything a caller submits for one ingestion attempt.

    Fields are optional at this level so the upload validator can report
    every missing one instead of failing on the first.
    """
    content: bytes
    original_filename: Optional[str]
    declared_mime_type: Optional[str]
    declared_size: Optional[int]
    owner_id: Optional[UUID]
    uploader_id: Optional[UUID]
    document_type: Optional[DocumentType]
    case_id: Optional[UUID] = None
    pending_item_id: Optional[UUID] = None
    upload_session_id: Optional[UUID] = None
    description: Optional[str] = None
    reusable: bool = False
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        """Actual payload size; declared_size is only cross-checked."""
        return len(self.content)


@dataclass
class UploadValidationResult:
    is_valid: bool
    reasons: List[str]
    correlation_id: str


@dataclass
class ClassificationResult:
    """Outcome of content security classification.

    accepted=False is an expected rejection, not an error.
    """
    accepted: bool
    detected_mime_type: Optional[str]
    detected_extension: Optional[str]
    security_flags: FrozenSet[SecurityFlag] = frozenset()
    message: str = ""
    reasons: List[str] = field(default_factory=list)

    @property
    def is_suspicious(self) -> bool:
        return SecurityFlag.SUSPICIOUS in self.security_flags

    def flag_values(self) -> List[str]:
        return sorted(flag.value for flag in self.security_flags)


@dataclass
class FileProcessingResult:
    content_hash: str
    stored_filename: str
    original_filename: str
    size_bytes: int
    mime_type: str


@dataclass
class ReuseDecision:
    can_reuse: bool
    reason: str
    existing_document: Optional[Document] = None
    candidate_found: bool = False


@dataclass
class IngestionOutcome:
    """Result of one ingestion attempt.

    On success, document is the fully hydrated record (new or reused).
    On failure, category and reasons describe why; error keeps the
    original exception when one was raised.
    """
    success: bool
    category: OutcomeCategory
    correlation_id: str
    reasons: List[str] = field(default_factory=list)
    document: Optional[Document] = None
    reused: bool = False
    security_flags: FrozenSet[SecurityFlag] = frozenset()
    error: Optional[IngestionError] = None

    @property
    def retryable(self) -> bool:
        return self.error is not None and self.error.retryable

    def raise_for_failure(self) -> None:
        """Raise the typed error for failed outcomes; no-op on success."""
        if self.success:
            return
        if self.error is not None:
            raise self.error
        error_cls = _CATEGORY_ERRORS.get(self.category, IngestionError)
        message = "; ".join(self.reasons) or self.category.value
        if error_cls is SecurityRejection:
            raise error_cls(
                message,
                flags=[flag.value for flag in self.security_flags],
                reasons=self.reasons,
                correlation_id=self.correlation_id,
            )
        raise error_cls(message, reasons=self.reasons, correlation_id=self.correlation_id)


_CATEGORY_ERRORS = {
    OutcomeCategory.VALIDATION_FAILED: InputValidationError,
    OutcomeCategory.SECURITY_REJECTED: SecurityRejection,
    OutcomeCategory.CLASSIFICATION_FAILED: SignatureInspectionError,
    OutcomeCategory.STORAGE_FAILED: StorageError,
    OutcomeCategory.PERSISTENCE_FAILED: RecordStoreError,
    OutcomeCategory.INVARIANT_VIOLATION: InvariantViolation,
}
