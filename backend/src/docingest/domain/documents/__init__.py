"""Documents domain module - validation, security classification, hashing,
reuse resolution, storage keys, persistence and ingestion orchestration
"""

from .compensation import cleanup_stored_file
from .content_security import ContentSecurityClassifier, detect_with_libmagic
from .file_processing import FileProcessor, compute_content_hash, generate_storage_filename
from .ingestion import DocumentIngestionService
from .models import (
    ClassificationResult,
    FileProcessingResult,
    IngestionOutcome,
    IngestRequest,
    ReuseDecision,
    SecurityFlag,
    UploadValidationResult,
)
from .persistence import PersistenceCoordinator, validate_document_data
from .reuse import ReuseResolver
from .storage_keys import build_storage_key
from .validation import (
    UploadValidator,
    check_storage_configuration,
    validate_file_size,
    validate_filename,
)

__all__ = [
    "ClassificationResult",
    "ContentSecurityClassifier",
    "DocumentIngestionService",
    "FileProcessingResult",
    "FileProcessor",
    "IngestionOutcome",
    "IngestRequest",
    "PersistenceCoordinator",
    "ReuseDecision",
    "ReuseResolver",
    "SecurityFlag",
    "UploadValidationResult",
    "UploadValidator",
    "build_storage_key",
    "check_storage_configuration",
    "cleanup_stored_file",
    "compute_content_hash",
    "detect_with_libmagic",
    "generate_storage_filename",
    "validate_document_data",
    "validate_file_size",
    "validate_filename",
]
