"""Citizen SQLAlchemy model

A citizen owns the documents submitted for their cases. Only the summary
fields the ingestion core reads are mapped here.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class Citizen(Base):
    __tablename__ = "citizen"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    full_name = Column(Text, nullable=False)
    tax_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    documents = relationship("Document", back_populates="owner")

    def summary(self) -> dict:
        return {"id": str(self.id), "name": self.full_name}
