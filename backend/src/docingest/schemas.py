"""Pydantic schemas for ingested documents"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from .models.document import Document, DocumentType


class PartySummary(BaseModel):
    """Owner or uploader summary embedded in a document response"""
    id: UUID
    name: str


class DocumentResponse(BaseModel):
    """Serializable view of a hydrated document record"""
    id: UUID
    owner_id: UUID
    uploader_id: UUID
    document_type: DocumentType
    case_id: Optional[UUID] = None
    pending_item_id: Optional[UUID] = None
    upload_session_id: Optional[UUID] = None
    original_filename: str
    stored_filename: str
    storage_key: str
    size_bytes: int = Field(..., gt=0)
    mime_type: str
    content_hash: str = Field(..., min_length=64, max_length=64)
    description: Optional[str] = None
    reusable: bool = False
    public_url: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    security_flags: List[str] = Field(default_factory=list)
    created_at: datetime
    owner: Optional[PartySummary] = None
    uploader: Optional[PartySummary] = None

    class Config:
        json_schema_extra = {
            "example": {
                "id": "6f1c2a5e-8a4b-4c1e-9d55-0c1f2b3a4d5e",
                "document_type": "RG",
                "original_filename": "rg-frente.pdf",
                "mime_type": "application/pdf",
                "size_bytes": 10240,
                "owner": {"id": "a1b2c3d4-e5f6-7890-abcd-ef1234567890", "name": "Maria Souza"},
            }
        }

    @classmethod
    def from_document(cls, document: Document) -> "DocumentResponse":
        """Build a response from a document loaded with its relations.

        Raises:
            ValueError: If owner or uploader relations are not loaded
        """
        if document.owner is None or document.uploader is None:
            raise ValueError(f"Document {document.id} is missing owner or uploader")

        metadata = document.metadata_json or {}
        return cls(
            id=document.id,
            owner_id=document.owner_id,
            uploader_id=document.uploader_id,
            document_type=document.document_type,
            case_id=document.case_id,
            pending_item_id=document.pending_item_id,
            upload_session_id=document.upload_session_id,
            original_filename=document.original_filename,
            stored_filename=document.stored_filename,
            storage_key=document.storage_key,
            size_bytes=document.size_bytes,
            mime_type=document.mime_type,
            content_hash=document.content_hash,
            description=document.description,
            reusable=bool(document.reusable),
            public_url=document.public_url,
            metadata=metadata,
            security_flags=list(metadata.get("security_flags", [])),
            created_at=document.created_at,
            owner=PartySummary(**document.owner.summary()),
            uploader=PartySummary(**document.uploader.summary()),
        )
