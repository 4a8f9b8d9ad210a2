"""Content hashing and storage filename generation"""

import hashlib
import logging
import re
import secrets
import time
from typing import Optional

from .models import FileProcessingResult
from .validation import file_extension

logger = logging.getLogger(__name__)

SHA256_HEX_PATTERN = re.compile(r"^[a-f0-9]{64}$")

_SAFE_EXTENSION = re.compile(r"^[a-z0-9]{1,10}$")


def compute_content_hash(content: bytes) -> str:
    """SHA-256 hex digest of the payload (deterministic)."""
    return hashlib.sha256(content).hexdigest()


def is_valid_content_hash(value: Optional[str]) -> bool:
    return bool(value) and SHA256_HEX_PATTERN.match(value) is not None


def generate_storage_filename(original_filename: str, correlation_id: str) -> str:
    """Unique storage filename embedding the correlation id.

    Format: {correlation_id}-{epoch_ms}-{16 hex chars}{.ext}
    Only a sanitized, lower-case extension survives from the original name.
    """
    extension = file_extension(original_filename)
    suffix = f".{extension}" if _SAFE_EXTENSION.match(extension) else ""
    timestamp = int(time.time() * 1000)
    return f"{correlation_id}-{timestamp}-{secrets.token_hex(8)}{suffix}"


class FileProcessor:
    """Produces the content hash and generated storage name for a payload."""

    def process(
        self,
        content: bytes,
        original_filename: str,
        mime_type: str,
        correlation_id: str,
    ) -> FileProcessingResult:
        content_hash = compute_content_hash(content)
        stored_filename = generate_storage_filename(original_filename, correlation_id)

        logger.debug(
            f"Processed file: original={original_filename!r}, stored={stored_filename}, "
            f"sha256={content_hash}, size={len(content)}"
        )

        return FileProcessingResult(
            content_hash=content_hash,
            stored_filename=stored_filename,
            original_filename=original_filename,
            size_bytes=len(content),
            mime_type=mime_type,
        )
