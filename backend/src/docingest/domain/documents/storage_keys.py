"""Hierarchical storage key generation

Keys are bucketed by ingestion date (never by file metadata dates):

    documents/{year}/{month}/{day}/{owner_id}/{type}/{generated_filename}

The type segment is omitted when no type is given. The key is a pure
function of its inputs.
"""

from datetime import date, datetime
from typing import Optional, Union
from uuid import UUID

from ...models.document import DocumentType

STORAGE_KEY_ROOT = "documents"


def build_storage_key(
    ingestion_date: Union[date, datetime],
    owner_id: UUID,
    document_type: Optional[DocumentType],
    generated_filename: str,
) -> str:
    """Build the storage key for a new object.

    Example:
        >>> build_storage_key(date(2025, 3, 7), UUID('a1b2c3d4-e5f6-7890-abcd-ef1234567890'),
        ...                   DocumentType.RG, 'abc.pdf')
        'documents/2025/03/07/a1b2c3d4-e5f6-7890-abcd-ef1234567890/RG/abc.pdf'
    """
    if not generated_filename or "/" in generated_filename:
        raise ValueError(f"Invalid generated filename: {generated_filename!r}")

    segments = [
        STORAGE_KEY_ROOT,
        f"{ingestion_date.year:04d}",
        f"{ingestion_date.month:02d}",
        f"{ingestion_date.day:02d}",
        str(owner_id),
    ]
    if document_type is not None:
        segments.append(DocumentType(document_type).value)
    segments.append(generated_filename)
    return "/".join(segments)
