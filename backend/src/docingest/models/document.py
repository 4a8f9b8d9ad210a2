"""Document SQLAlchemy model

Document represents an ingested citizen/staff file. Tracks storage location,
content hash for reuse detection, declared type and upload metadata.
"""

import enum
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    BigInteger,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, PortableJSONB

DESCRIPTION_MAX_LENGTH = 500


class DocumentType(str, enum.Enum):
    """Declared document type supplied by the uploader"""
    CPF = "CPF"
    RG = "RG"
    CNH = "CNH"
    PASSPORT = "PASSPORT"
    BIRTH_CERTIFICATE = "BIRTH_CERTIFICATE"
    MARRIAGE_CERTIFICATE = "MARRIAGE_CERTIFICATE"
    PROOF_OF_RESIDENCE = "PROOF_OF_RESIDENCE"
    PROOF_OF_INCOME = "PROOF_OF_INCOME"
    OTHER = "OTHER"


class Document(Base):
    """Document model representing an ingested file.

    Rows are created once after a successful storage write and afterwards
    only receive a public URL or a soft-delete timestamp. Soft-deleted rows
    never take part in reuse lookups.
    """
    __tablename__ = "document"
    __table_args__ = (
        Index("ix_document_owner_id", "owner_id"),
        Index("ix_document_owner_hash", "owner_id", "content_hash"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    owner_id = Column(Uuid, ForeignKey("citizen.id", ondelete="RESTRICT"), nullable=False)
    case_id = Column(Uuid, nullable=True)
    pending_item_id = Column(Uuid, nullable=True)
    upload_session_id = Column(Uuid, nullable=True)
    document_type = Column(
        SQLEnum(DocumentType, name="document_type", native_enum=False, length=40),
        nullable=False,
    )
    uploader_id = Column(Uuid, ForeignKey("app_user.id", ondelete="RESTRICT"), nullable=False)
    stored_filename = Column(Text, nullable=False)
    original_filename = Column(Text, nullable=False)
    storage_key = Column(Text, nullable=False)
    size_bytes = Column(BigInteger, nullable=False)
    mime_type = Column(Text, nullable=False)
    content_hash = Column(String(64), nullable=False)  # SHA-256 hex
    description = Column(String(DESCRIPTION_MAX_LENGTH), nullable=True)
    reusable = Column(Boolean, nullable=False, default=False)
    metadata_json = Column(PortableJSONB, nullable=True)
    public_url = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
    deleted_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    owner = relationship("Citizen", back_populates="documents")
    uploader = relationship("User", back_populates="uploaded_documents")

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
