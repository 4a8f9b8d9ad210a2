"""Upload pre-flight validation

Structural checks run before any content inspection: required fields, size
ceiling, extension allow-list and filename sanity. Every rule is evaluated
independently so the caller receives the complete list of reasons.
"""

import logging
import os
from typing import Iterable, List, Optional, Tuple

from ...config import IngestionPolicy
from ...errors import ConfigurationError
from ...observability.correlation_id import generate_correlation_id
from .models import IngestRequest, UploadValidationResult

logger = logging.getLogger(__name__)


def file_extension(filename: Optional[str]) -> str:
    """Lower-case extension without the dot ('' when there is none)

    Example:
        >>> file_extension('Scan.PDF')
        'pdf'
        >>> file_extension('README')
        ''
    """
    if not filename:
        return ""
    _, ext = os.path.splitext(filename)
    return ext.lstrip(".").lower()


def validate_file_size(size_bytes: Optional[int], max_size: int) -> Tuple[bool, Optional[str]]:
    """Validate file size is within limits

    Args:
        size_bytes: File size in bytes
        max_size: Maximum allowed size

    Returns:
        Tuple of (is_valid, error_message)

    Example:
        >>> validate_file_size(1024, 10 * 1024 * 1024)
        (True, None)
        >>> validate_file_size(0, 1024)
        (False, 'File is empty (0 bytes)')
    """
    if size_bytes is None or size_bytes <= 0:
        return False, "File is empty (0 bytes)"

    if size_bytes > max_size:
        return False, f"File exceeds maximum size of {max_size} bytes (got {size_bytes} bytes)"

    return True, None


def validate_filename(filename: Optional[str]) -> Tuple[bool, Optional[str]]:
    """Validate filename

    Validation rules:
    - Not empty
    - Max 255 characters
    - No directory separators and no bare "." or ".." name
    - No null bytes
    - No control characters

    Example:
        >>> validate_filename('rg.pdf')
        (True, None)
        >>> validate_filename('../../etc/passwd')
        (False, 'Filename contains path traversal or directory separators')
    """
    if not filename or len(filename.strip()) == 0:
        return False, "Filename cannot be empty"

    if len(filename) > 255:
        return False, f"Filename exceeds 255 characters (got {len(filename)})"

    if filename.strip() in ('.', '..') or '/' in filename or '\\' in filename:
        return False, "Filename contains path traversal or directory separators"

    if '\x00' in filename:
        return False, "Filename contains null bytes"

    if any(ord(c) < 32 for c in filename):
        return False, "Filename contains control characters"

    return True, None


class UploadValidator:
    """Pre-flight validator for ingestion requests.

    Has no storage or persistence side effects.
    """

    def __init__(self, policy: IngestionPolicy):
        self.policy = policy

    def validate(
        self,
        request: IngestRequest,
        correlation_id: Optional[str] = None,
    ) -> UploadValidationResult:
        """Evaluate every rule and collect all failures.

        Args:
            request: Ingestion request
            correlation_id: Attempt identifier (generated when omitted)

        Returns:
            UploadValidationResult with is_valid, reasons and correlation_id
        """
        correlation_id = correlation_id or generate_correlation_id()
        reasons: List[str] = []

        if not request.content:
            reasons.append("File content is empty")

        if request.owner_id is None:
            reasons.append("owner_id is required")

        if request.uploader_id is None:
            reasons.append("uploader_id is required")

        if request.document_type is None:
            reasons.append("document_type is required")

        size_ok, size_error = validate_file_size(request.size, self.policy.max_file_size_bytes)
        if not size_ok:
            reasons.append(size_error)

        if request.declared_size is not None and request.declared_size != request.size:
            reasons.append(
                f"Declared size {request.declared_size} bytes does not match payload size {request.size} bytes"
            )

        name_ok, name_error = validate_filename(request.original_filename)
        if not name_ok:
            reasons.append(name_error)

        extension = file_extension(request.original_filename)
        if extension not in self.policy.allowed_extensions:
            reasons.append(
                f"File extension '.{extension}' is not allowed" if extension
                else "File has no extension"
            )

        result = UploadValidationResult(
            is_valid=not reasons,
            reasons=reasons,
            correlation_id=correlation_id,
        )

        if result.is_valid:
            logger.debug(f"Upload passed pre-flight validation: file={request.original_filename!r}")
        else:
            logger.info(
                f"Upload failed pre-flight validation: file={request.original_filename!r}, "
                f"reasons={reasons}"
            )

        return result


def check_storage_configuration(
    backend_name: str,
    registered_backends: Iterable[str],
) -> None:
    """Fail fast at startup when no usable storage backend is registered.

    Raises:
        ConfigurationError: If nothing is registered or the configured
            backend is unknown
    """
    registered = sorted(registered_backends)
    if not registered:
        raise ConfigurationError("No storage backend is registered")
    if backend_name not in registered:
        raise ConfigurationError(
            f"Storage backend '{backend_name}' is not registered "
            f"(available: {', '.join(registered)})"
        )
    logger.info(f"Storage configuration OK: backend={backend_name}")
