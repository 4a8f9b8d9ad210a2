"""User SQLAlchemy model (staff member or citizen account that uploads files)"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Text, Uuid
from sqlalchemy.orm import relationship

from .base import Base


class User(Base):
    __tablename__ = "app_user"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=lambda: datetime.now(timezone.utc))

    uploaded_documents = relationship("Document", back_populates="uploader")

    def summary(self) -> dict:
        return {"id": str(self.id), "name": self.name}
