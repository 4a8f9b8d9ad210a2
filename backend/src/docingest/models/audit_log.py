"""AuditLog SQLAlchemy model

Immutable record of one pipeline fact (validation, classification, reuse,
storage, persistence). Rows are only ever inserted.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Index, Text, Uuid

from .base import Base, PortableJSONB


class AuditLog(Base):
    __tablename__ = "audit_log"
    __table_args__ = (
        Index("ix_audit_log_correlation_id", "correlation_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    correlation_id = Column(Text, nullable=False)
    action = Column(Text, nullable=False)
    severity = Column(Text, nullable=False)
    outcome = Column(Text, nullable=False)
    owner_id = Column(Uuid, nullable=True)
    actor_id = Column(Uuid, nullable=True)
    entity_type = Column(Text, nullable=True)
    entity_id = Column(Uuid, nullable=True)
    metadata_json = Column(PortableJSONB, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))
